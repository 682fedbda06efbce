"""Tests for open-ended question → SQL → rows."""

import asyncio

from database import Student, Teacher
from exceptions import QueryExecutionError
from models import DatabaseQueryResult, ErrorResult
from schema_context import DEFAULT_SCHEMA, render_schema
from sql_synthesizer import SQLSynthesizer, describe_caller


class RecordingExecutor:
    """Executor double that records statements instead of running them."""

    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.statements = []

    async def fetch_all(self, statement, params=None):
        self.statements.append(str(statement))
        if self.error:
            raise self.error
        return self.rows


def test_prompt_carries_schema_and_caller(fake_llm, student_caller):
    llm = fake_llm(["SELECT name FROM students"])
    synthesizer = SQLSynthesizer(llm, RecordingExecutor(), DEFAULT_SCHEMA)

    asyncio.run(synthesizer.synthesize("who is enrolled", student_caller))

    system = llm.calls[0]["system"]
    assert render_schema(DEFAULT_SCHEMA) in system
    assert "Current user: Maria (ID: 5, Role: student)" in system
    assert llm.calls[0]["user"] == "who is enrolled"


def test_describe_caller_without_login():
    assert describe_caller(None) == "No user logged in"


def test_rejected_sql_is_never_executed(fake_llm):
    executor = RecordingExecutor()
    synthesizer = SQLSynthesizer(fake_llm(["DROP TABLE students"]), executor, DEFAULT_SCHEMA)

    result = asyncio.run(synthesizer.answer("delete everything"))

    assert isinstance(result, ErrorResult)
    assert result.reason == "synthesis_rejected"
    assert executor.statements == []


def test_completion_failure_is_rejection(fake_llm):
    executor = RecordingExecutor()
    synthesizer = SQLSynthesizer(fake_llm([None]), executor, DEFAULT_SCHEMA)

    result = asyncio.run(synthesizer.answer("anything"))

    assert result.reason == "synthesis_rejected"
    assert executor.statements == []


def test_execution_error_becomes_error_result(fake_llm):
    executor = RecordingExecutor(error=QueryExecutionError("no such column: nickname"))
    synthesizer = SQLSynthesizer(fake_llm(["SELECT nickname FROM students"]), executor, DEFAULT_SCHEMA)

    result = asyncio.run(synthesizer.answer("nicknames?"))

    assert isinstance(result, ErrorResult)
    assert result.reason == "execution_failed"
    assert executor.statements == ["SELECT nickname FROM students LIMIT 200"]


def test_rows_are_returned_with_metadata(fake_llm, memory_db):
    llm = fake_llm(["```sql\nSELECT name, department FROM teachers WHERE department ILIKE '%science%' ORDER BY name\n```"])

    async def scenario():
        async with memory_db() as db:
            await db.add(
                Teacher(name="Ana Reyes", department="Computer Science"),
                Teacher(name="Ben Cruz", department="Science"),
                Teacher(name="Carla Lim", department="History"),
            )
            # sqlite has no ILIKE; the statement fails and is reported, not raised
            failed = await SQLSynthesizer(llm, db.executor, DEFAULT_SCHEMA).answer("science teachers")

            ok_llm = fake_llm(["SELECT name, department FROM teachers WHERE department LIKE '%Science%' ORDER BY name"])
            ok = await SQLSynthesizer(ok_llm, db.executor, DEFAULT_SCHEMA).answer("science teachers")
            return failed, ok

    failed, ok = asyncio.run(scenario())

    assert failed.reason == "execution_failed"
    assert isinstance(ok, DatabaseQueryResult)
    assert ok.count == 2
    assert ok.results == [
        {"name": "Ana Reyes", "department": "Computer Science"},
        {"name": "Ben Cruz", "department": "Science"},
    ]
    assert ok.query == "science teachers"
    assert ok.sql.endswith("LIMIT 200")
    assert not ok.too_large


def test_full_page_is_flagged_too_large(fake_llm, memory_db):
    llm = fake_llm(["SELECT name FROM students ORDER BY id"])

    async def scenario():
        async with memory_db() as db:
            await db.add(*[Student(name=f"Student {n}") for n in range(5)])
            synthesizer = SQLSynthesizer(llm, db.executor, DEFAULT_SCHEMA, row_cap=3)
            return await synthesizer.answer("list students")

    result = asyncio.run(scenario())

    assert result.count == 3
    assert result.too_large
    assert result.sql == "SELECT name FROM students ORDER BY id LIMIT 3"
