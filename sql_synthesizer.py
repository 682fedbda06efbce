"""
RollCall – Open-ended questions → one read-only SQL statement.

This is the deliberate escape hatch for questions the router has no fixed
query for. Its only safety is sql_validator's pattern gate; nothing that
fails the gate is executed.
"""

import logging
from typing import Optional

from sqlalchemy import text

from database import QueryExecutor
from exceptions import QueryExecutionError
from gemini_client import CompletionClient
from models import (
    CallerIdentity, DatabaseQueryResult, ErrorResult, SynthesizedSQL
)
from schema_context import SchemaDescription, render_schema
from sql_validator import ROW_CAP, validate_sql

logger = logging.getLogger(__name__)

_NL_TO_SQL_PROMPT = """You are a PostgreSQL expert. Generate a READ-ONLY SELECT query.

RULES:
1. Exactly one SELECT statement (no INSERT, UPDATE, DELETE, DROP, ALTER, CREATE)
2. Use proper JOINs when needed
3. Filter by the current user when they ask about themselves
4. Return ONLY the SQL query, no explanations, no markdown fences
5. Use ILIKE for case-insensitive text search
6. PostgreSQL syntax only; never invent tables or columns

{schema}

{caller}

Examples:
Q: 'how many students are enrolled'
SQL: SELECT COUNT(*) AS total FROM students WHERE is_active = true

Q: 'list all teachers in computer science'
SQL: SELECT name, email FROM teachers WHERE department ILIKE '%computer science%'

Q: 'show Maria classes' (user_id: 5, role: student)
SQL: SELECT c.name, c.subject, t.name AS teacher FROM classes c JOIN student_class sc ON c.id = sc.class_id JOIN students s ON s.id = sc.student_id JOIN teachers t ON c.teacher_id = t.id WHERE s.user_id = 5

Generate SQL:"""


def describe_caller(caller: Optional[CallerIdentity]) -> str:
    if caller is None:
        return "No user logged in"
    return f"Current user: {caller.name} (ID: {caller.id}, Role: {caller.role})"


class SQLSynthesizer:
    """Asks the model for SQL, gates it, and runs what survives"""

    def __init__(
        self,
        completion: CompletionClient,
        executor: QueryExecutor,
        schema: SchemaDescription,
        row_cap: int = ROW_CAP,
    ):
        self.completion = completion
        self.executor = executor
        self.schema = schema
        self.row_cap = row_cap

    async def synthesize(
        self, question: str, caller: Optional[CallerIdentity] = None
    ) -> Optional[SynthesizedSQL]:
        """Return a gated statement, or None if the model failed or was rejected."""
        system_prompt = _NL_TO_SQL_PROMPT.format(
            schema=render_schema(self.schema),
            caller=describe_caller(caller),
        )
        raw_sql = await self.completion.complete(system_prompt, question)
        if raw_sql is None:
            return None

        try:
            return validate_sql(raw_sql, cap=self.row_cap)
        except ValueError as exc:
            logger.warning("Rejected generated SQL (%s): %r", exc, raw_sql)
            return None

    async def answer(
        self, question: str, caller: Optional[CallerIdentity] = None
    ):
        """Synthesize, execute, and wrap the rows (or the failure) as a result."""
        synthesized = await self.synthesize(question, caller)
        if synthesized is None:
            return ErrorResult(
                reason="synthesis_rejected",
                message="I couldn't answer that question. Try asking about "
                        "students, teachers, classes, or attendance.",
            )

        try:
            rows = await self.executor.fetch_all(text(synthesized.statement))
        except QueryExecutionError as exc:
            logger.error("Generated SQL failed: %s | %s", exc, synthesized.statement)
            return ErrorResult(
                reason="execution_failed",
                message="I had trouble finding that information. Try rephrasing your question.",
            )

        return DatabaseQueryResult(
            results=rows,
            count=len(rows),
            query=question,
            sql=synthesized.statement,
            too_large=len(rows) >= self.row_cap,
        )
