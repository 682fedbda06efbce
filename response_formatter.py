"""
RollCall – Turn a QueryResult into the sentence the user reads.

Known shapes (count, rate, list, student_count, classes_list, excuse_count,
error) use fixed templates and never touch the model. Open-ended rows, and
any shape without a template, are summarised by the completion backend.
If that call fails we return None rather than make up a number.
"""

import json
import logging
from typing import Optional

from gemini_client import CompletionClient
from models import (
    CallerIdentity, ClassesListResult, CountResult, DatabaseQueryResult,
    ErrorResult, ExcuseCountResult, ListResult, RateResult, StudentCountResult,
)

logger = logging.getLogger(__name__)

NOTHING_FOUND = "I couldn't find any matching data for your question."

PERIOD_PHRASES = {
    "today": "today",
    "this_week": "this week",
    "this_month": "this month",
    "last_month": "last month",
    "this_year": "this year",
}

_SUMMARY_PROMPT = (
    "Format database query results into a natural, friendly answer. "
    "Be concise (2-3 sentences max). Use only the numbers in the results."
)

_GENERIC_PROMPT = (
    "Answer in 1-2 friendly sentences. Use the numbers from the data and "
    "never invent any."
)


def plural(count: int, singular: str, plural_form: Optional[str] = None) -> str:
    """'1 class', '2 classes'."""
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural_form or singular + 's'}"


def period_phrase(period: str) -> str:
    return PERIOD_PHRASES.get(period, PERIOD_PHRASES["this_month"])


def _is_caller(name: Optional[str], caller: Optional[CallerIdentity]) -> bool:
    return bool(name and caller and caller.name and name.strip().lower() == caller.name.strip().lower())


def _format_rate(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def addressing_note(caller: Optional[CallerIdentity]) -> str:
    if caller is None:
        return ""
    return (
        f" The person asking is {caller.name} ({caller.role or 'user'}). "
        "Address them as 'you/your', never by name."
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------
def format_count(result: CountResult, caller: Optional[CallerIdentity] = None) -> str:
    when = period_phrase(result.period)
    you = _is_caller(result.student, caller)
    status = result.status if result.status != "all" else "attendance"

    if result.student:
        if result.count == 0:
            who = "You have" if you else f"{result.student} has"
            return f"{who} no {status} records {when}."
        if result.status == "all":
            who = "You have" if you else f"{result.student} has"
            return f"{who} {plural(result.count, 'attendance record')} {when}."
        who = "You were" if you else f"{result.student} was"
        return f"{who} {result.status} {plural(result.count, 'time')} {when}."

    if result.count == 0:
        return f"There are no {status} records {when}."
    verb = "is" if result.count == 1 else "are"
    return f"There {verb} {plural(result.count, status + ' record')} {when}."


def format_rate(result: RateResult, caller: Optional[CallerIdentity] = None) -> str:
    when = period_phrase(result.period)
    if _is_caller(result.student, caller):
        owner, target = "Your", "you"
    elif result.student:
        owner, target = f"{result.student}'s", result.student
    else:
        owner, target = "The overall", "anyone"

    if result.total_records == 0:
        return f"There are no attendance records for {target} {when}, so the attendance rate is 0%."
    return (
        f"{owner} attendance rate {when} is {_format_rate(result.attendance_rate)}% "
        f"({result.present_count} of {plural(result.total_records, 'record')} marked present)."
    )


def format_list(result: ListResult, caller: Optional[CallerIdentity] = None) -> str:
    when = period_phrase(result.period)
    if _is_caller(result.student, caller):
        target = "you"
    else:
        target = result.student or "anyone"

    if result.count == 0:
        return f"No attendance records were found for {target} {when}."

    header = (
        f"Here {'is' if result.count == 1 else 'are'} the "
        f"{plural(result.count, 'most recent attendance record')} for {target} {when}:"
    )
    lines = [
        f"• {entry.date.isoformat()}: {entry.status or 'not marked'}" for entry in result.records
    ]
    return "\n".join([header, ""] + lines)


def format_student_count(result: StudentCountResult) -> str:
    class_name = result.class_name or "the class"
    if result.student_count == 0:
        return f"There are no students enrolled in {class_name} yet."
    verb = "is" if result.student_count == 1 else "are"
    return f"There {verb} {plural(result.student_count, 'student')} enrolled in {class_name}."


def format_classes_list(result: ClassesListResult) -> str:
    teaching = result.role == "teacher"
    if result.count == 0:
        return "You don't have any classes assigned yet." if teaching \
            else "You don't have any enrolled classes yet."

    lead = "You're teaching" if teaching else "You're enrolled in"
    lines = [f"{lead} {plural(result.count, 'class', 'classes')}:", ""]
    for row in result.classes:
        line = f"• {row.get('class_name') or row.get('name') or 'Unknown'}"
        if row.get("subject"):
            line += f" ({row['subject']})"
        if row.get("schedule"):
            line += f" - {row['schedule']}"
        if row.get("section"):
            line += f", section {row['section']}"
        if row.get("teacher_name"):
            line += f"\n  Teacher: {row['teacher_name']}"
        lines.append(line)
    return "\n".join(lines).strip()


def format_excuse_count(result: ExcuseCountResult) -> str:
    if result.count == 0:
        return "You haven't approved any excuse requests yet."
    return f"You have approved {plural(result.count, 'excuse request')}."


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------
class ResponseFormatter:
    """Templates first; the model only for shapes we can't template"""

    def __init__(self, completion: CompletionClient):
        self.completion = completion

    async def format(
        self,
        result,
        original_question: str,
        caller: Optional[CallerIdentity] = None,
    ) -> Optional[str]:
        if isinstance(result, CountResult):
            return format_count(result, caller)
        if isinstance(result, RateResult):
            return format_rate(result, caller)
        if isinstance(result, ListResult):
            return format_list(result, caller)
        if isinstance(result, StudentCountResult):
            return format_student_count(result)
        if isinstance(result, ClassesListResult):
            return format_classes_list(result)
        if isinstance(result, ExcuseCountResult):
            return format_excuse_count(result)
        if isinstance(result, ErrorResult):
            return result.message
        if isinstance(result, DatabaseQueryResult):
            return await self._summarise_rows(result, original_question, caller)
        return await self._summarise_unknown(result, original_question, caller)

    async def _summarise_rows(
        self, result: DatabaseQueryResult, question: str, caller: Optional[CallerIdentity]
    ) -> Optional[str]:
        if result.count == 0:
            return NOTHING_FOUND

        rows_json = json.dumps(result.results, default=str)
        user_prompt = (
            f"Question: \"{result.query or question}\"\n\n"
            f"Results from database: {rows_json}\n\n"
            "Provide a natural answer:"
        )
        answer = await self.completion.complete(_SUMMARY_PROMPT + addressing_note(caller), user_prompt)
        if answer is None:
            logger.warning("Could not summarise %d rows; completion unavailable", result.count)
        return answer

    async def _summarise_unknown(
        self, result, question: str, caller: Optional[CallerIdentity]
    ) -> Optional[str]:
        data = result.model_dump(mode="json") if hasattr(result, "model_dump") else result
        user_prompt = (
            f"Original question: \"{question}\"\n\n"
            f"Database result: {json.dumps(data, default=str)}\n\n"
            "Provide a natural response:"
        )
        return await self.completion.complete(_GENERIC_PROMPT + addressing_note(caller), user_prompt)
