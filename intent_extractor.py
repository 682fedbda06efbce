"""
RollCall – Intent extraction.

One completion call with a fixed few-shot prompt turns a question into an
ExtractedIntent. Anything short of a clean, valid JSON object yields None;
we never guess a partial intent.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from gemini_client import CompletionClient
from json_extractor import extract_json_object
from models import ExtractedIntent, Question

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prompt (kept as a module-level constant for easy tweaking)
# ---------------------------------------------------------------------------
_EXTRACT_PROMPT = """Extract query data. Return ONLY JSON.

Query Types:
- Attendance: count_absences, count_present, count_late, list_dates, attendance_rate
- Classes: list_classes, count_students_in_class
- General: general_question

Format:
{"query_category":"attendance|classes|general","student_name":"NAME or null","class_name":"CLASS NAME or null","query_type":"TYPE","status":"STATUS or null","time_period":"PERIOD"}

Status: absent, present, late, excused
Period: today, this_week, this_month, last_month, this_year

Examples:
'John absent last month' → {"query_category":"attendance","student_name":"John","class_name":null,"query_type":"count_absences","status":"absent","time_period":"last_month"}

'list my enrolled classes' → {"query_category":"classes","student_name":null,"class_name":null,"query_type":"list_classes","status":null,"time_period":"this_month"}

'how many students in Life and works of Rizal' → {"query_category":"classes","student_name":null,"class_name":"Life and works of Rizal","query_type":"count_students_in_class","status":null,"time_period":"this_month"}

'how many students present today' → {"query_category":"attendance","student_name":null,"class_name":null,"query_type":"count_present","status":"present","time_period":"today"}

'what is Ana's attendance rate this year' → {"query_category":"attendance","student_name":"Ana","class_name":null,"query_type":"attendance_rate","status":null,"time_period":"this_year"}

'which teacher handles the most sections' → {"query_category":"general","student_name":null,"class_name":null,"query_type":"general_question","status":null,"time_period":"this_month"}

Extract:"""


def parse_intent(raw: Optional[str]) -> Optional[ExtractedIntent]:
    """Turn raw completion text into an intent, or None if it can't be trusted."""
    if not raw:
        return None

    payload = extract_json_object(raw)
    if payload is None:
        logger.warning("No JSON object in extraction output: %r", raw[:200])
        return None

    try:
        return ExtractedIntent.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Extraction output failed validation: %s", exc.errors())
        return None


class IntentExtractor:
    """Classifies a question and pulls out its parameters"""

    def __init__(self, completion: CompletionClient):
        self.completion = completion

    async def extract(self, question: Question) -> Optional[ExtractedIntent]:
        raw = await self.completion.complete(
            _EXTRACT_PROMPT,
            question.text,
            question.history,
        )
        if raw is None:
            logger.warning("Completion unavailable; no intent extracted")
            return None

        intent = parse_intent(raw)
        if intent is not None:
            logger.info(
                "Extracted intent %s/%s (period=%s)",
                intent.category, intent.query_type, intent.time_period,
            )
        return intent
