"""
RollCall – Chat query endpoints.

POST /api/chat/query    – runs the full pipeline, returns a natural-language answer.
GET  /api/chat/status   – completion backend liveness + available models.
GET  /api/chat/examples – example questions the user can try.
"""

from fastapi import APIRouter, Depends, HTTPException

from config import config
from gemini_client import CompletionClient, GeminiCompletionClient
from pipeline import run_pipeline
from schemas import ChatQueryRequest, ChatQueryResponse, StatusResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_completion_client() -> CompletionClient:
    return GeminiCompletionClient()


# ---------------------------------------------------------------------------
# POST /api/chat/query
# ---------------------------------------------------------------------------
@router.post("/query", response_model=ChatQueryResponse)
async def query(req: ChatQueryRequest, completion: CompletionClient = Depends(get_completion_client)):
    """
    Takes a natural-language question, runs the full pipeline, and returns
    a human-readable answer.
    """
    if not await completion.is_available():
        raise HTTPException(
            status_code=503,
            detail="AI service is currently unavailable. Please try again later."
        )

    result = await run_pipeline(
        req.message,
        caller=req.caller,
        history=req.conversation_history,
        completion=completion,
    )

    payload = result.to_dict()
    return ChatQueryResponse(
        success=result.success,
        response=result.answer,
        data=payload["data"],
        error=result.error,
        stage=result.stage,
        debug={"extracted_query": payload["intent"], "resolved_question": result.resolved_question},
    )


# ---------------------------------------------------------------------------
# GET /api/chat/status
# ---------------------------------------------------------------------------
@router.get("/status", response_model=StatusResponse)
async def status(completion: CompletionClient = Depends(get_completion_client)):
    """Is the completion backend reachable, and which models does it offer?"""
    available = await completion.is_available()
    models = await completion.list_models() if available else None
    return StatusResponse(available=available, model=config.GEMINI_MODEL, models=models)


# ---------------------------------------------------------------------------
# GET /api/chat/examples  – seed questions for the UI
# ---------------------------------------------------------------------------
_EXAMPLE_QUESTIONS = [
    "How many times was I absent this month?",
    "What is my attendance rate this year?",
    "When was Maria late last month?",
    "How many students are present today?",
    "How many students are in Application Development?",
    "List my enrolled classes.",
    "How many excuse requests have I approved?",
    "Which teachers are in the computer science department?",
]


@router.get("/examples")
async def examples():
    """Return a curated list of example questions the user can try."""
    return {"examples": _EXAMPLE_QUESTIONS}
