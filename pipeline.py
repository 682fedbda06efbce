"""
RollCall – Core question → intent → query → answer pipeline.

This module is the single place that orchestrates the full flow.
Every public endpoint calls run_pipeline().
"""

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from database import QueryExecutor
from gemini_client import CompletionClient, GeminiCompletionClient
from intent_extractor import IntentExtractor
from models import CallerIdentity, ConversationTurn, ErrorResult, Question
from pronouns import substitute_pronouns
from query_router import QueryRouter
from response_formatter import ResponseFormatter
from schema_context import DEFAULT_SCHEMA, SchemaDescription
from sql_synthesizer import SQLSynthesizer
from time_window import Clock

logger = logging.getLogger(__name__)

FORMAT_FAILED_MESSAGE = "Failed to generate response. Please try again."
NOT_UNDERSTOOD_MESSAGE = "I could not understand your question. Please try asking differently."


# ---------------------------------------------------------------------------
# Pipeline result
# ---------------------------------------------------------------------------
class PipelineResult:
    """Holds every piece of information the API response needs."""

    def __init__(self):
        self.question: str        = ""
        self.resolved_question: str = ""        # after pronoun substitution
        self.intent               = None        # ExtractedIntent or None
        self.result               = None        # QueryResult variant
        self.answer: str          = ""
        self.error: str | None    = None
        self.stage: str           = "init"      # last completed stage

    @property
    def success(self) -> bool:
        return self.error is None and not isinstance(self.result, ErrorResult)

    def to_dict(self) -> dict[str, Any]:
        return {
            "question":          self.question,
            "resolved_question": self.resolved_question,
            "intent":            self.intent.model_dump() if self.intent else None,
            "data":              self.result.model_dump(mode="json") if self.result else None,
            "answer":            self.answer,
            "error":             self.error,
            "stage":             self.stage,
        }


def asks_about_approved_excuses(text: str) -> bool:
    lowered = text.lower()
    return "excuse" in lowered and "approve" in lowered


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------
async def run_pipeline(
    question: str,
    caller: Optional[CallerIdentity] = None,
    history: Optional[Sequence[ConversationTurn]] = None,
    *,
    completion: Optional[CompletionClient] = None,
    executor: Optional[QueryExecutor] = None,
    schema: Optional[SchemaDescription] = None,
    clock: Clock = datetime.now,
) -> PipelineResult:
    """
    Full pipeline:
        1. Pronouns  (deterministic rewrite of I/my/me)
        2. Extract   (completion → ExtractedIntent)
        3. Route     (fixed query or synthesized SQL)
        4. Format    (template or completion)

    Errors are caught per-stage so the caller always gets a result object,
    never an uncaught exception.
    """
    completion = completion or GeminiCompletionClient()
    executor = executor or QueryExecutor()
    synthesizer = SQLSynthesizer(completion, executor, schema or DEFAULT_SCHEMA)
    router = QueryRouter(executor, synthesizer, clock=clock)
    extractor = IntentExtractor(completion)
    formatter = ResponseFormatter(completion)

    result = PipelineResult()
    result.question = question
    resolved = substitute_pronouns(question, caller)
    result.resolved_question = resolved

    excuse_shortcut = asks_about_approved_excuses(question)

    # ------------------------------------------------------------------
    # Stage 1 – Extract (skipped for the approved-excuse shortcut)
    # ------------------------------------------------------------------
    if not excuse_shortcut:
        result.intent = await extractor.extract(
            Question(text=resolved, caller=caller, history=list(history or []))
        )

    # ------------------------------------------------------------------
    # Stage 2 – Route
    # ------------------------------------------------------------------
    try:
        if excuse_shortcut:
            query_result = await router.count_approved_excuses(caller)
        elif result.intent is None:
            # nothing structured; let the open-ended path have a go
            logger.info("No intent extracted; falling back to SQL synthesis")
            query_result = await synthesizer.answer(resolved, caller)
            if isinstance(query_result, ErrorResult) and query_result.reason == "synthesis_rejected":
                query_result = ErrorResult(reason="not_understood", message=NOT_UNDERSTOOD_MESSAGE)
        else:
            query_result = await router.route(result.intent, caller, resolved)
    except Exception:
        logger.exception("Routing failed for %r", resolved)
        query_result = ErrorResult(
            reason="execution_failed",
            message="I had trouble looking that up. Please try again later.",
        )
    result.result = query_result
    result.stage = "routed"

    if isinstance(result.result, ErrorResult):
        result.error = result.result.reason

    # ------------------------------------------------------------------
    # Stage 3 – Format
    # ------------------------------------------------------------------
    try:
        answer = await formatter.format(result.result, question, caller)
    except Exception:
        logger.exception("Formatting failed for %s result", getattr(result.result, "type", "unknown"))
        answer = None
    if answer is None:
        result.error = result.error or "format_failed"
        result.answer = FORMAT_FAILED_MESSAGE
        result.stage = "format_failed"
        return result

    result.answer = answer
    result.stage = "completed"
    return result
