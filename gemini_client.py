"""
RollCall – Text completion client.

The pipeline only needs three things from a language model:
  1. complete(system, user, history) -> text or None
  2. is_available()                  -> bool (short liveness check)
  3. list_models()                   -> model names or None

None of them raise. Every transport, status or body problem is logged and
turned into ``None`` / ``False`` so callers only ever deal with absence.
Backed by Gemini via the official google-generativeai SDK.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import google.generativeai as genai

from config import config
from models import ConversationTurn

logger = logging.getLogger(__name__)


class CompletionClient(ABC):
    """Abstract interface for any completion backend"""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> Optional[str]:
        """Return the completion text, or None when the backend is unavailable."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Cheap liveness check. Must not raise."""

    @abstractmethod
    async def list_models(self) -> Optional[list[str]]:
        """Names of the models the backend offers, or None."""


def build_contents(
    history: Optional[Sequence[ConversationTurn]], user_prompt: str
) -> list[dict]:
    """Prior turns (most recent last) as role-tagged Gemini contents, then the new prompt."""
    contents = [
        {"role": "user" if turn.role == "user" else "model", "parts": [turn.content]}
        for turn in history or []
    ]
    contents.append({"role": "user", "parts": [user_prompt]})
    return contents


class GeminiCompletionClient(CompletionClient):
    """Concrete CompletionClient using Gemini."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        check_timeout: Optional[float] = None,
        temperature: float = 0.3,
    ):
        self.api_key = api_key or config.GEMINI_API_KEY
        self.model_name = model or config.GEMINI_MODEL
        self.timeout = timeout or config.LLM_TIMEOUT
        self.check_timeout = check_timeout or config.LLM_CHECK_TIMEOUT
        self.temperature = temperature

    def _get_model(self, system_prompt: str):
        """
        Build a model handle with the current key. Configured per call so a
        rotated key is picked up without a restart.
        """
        genai.configure(api_key=self.api_key)
        return genai.GenerativeModel(
            self.model_name,
            system_instruction=system_prompt,
            generation_config={"temperature": self.temperature},
        )

    async def complete(self, system_prompt, user_prompt, history=None):
        if not self.api_key:
            logger.error("Gemini API key is not configured; completion skipped")
            return None

        contents = build_contents(history, user_prompt)

        try:
            model = self._get_model(system_prompt)
            response = await asyncio.wait_for(
                model.generate_content_async(contents),
                timeout=self.timeout,
            )
            text = response.text
        except asyncio.TimeoutError:
            logger.warning("Gemini completion timed out after %ss", self.timeout)
            return None
        except Exception as exc:
            # response.text raises ValueError for blocked / empty candidates
            logger.error("Gemini completion failed: %s", exc)
            return None

        if not text or not text.strip():
            logger.warning("Gemini returned an empty completion")
            return None
        return text.strip()

    def _model_names(self) -> list[str]:
        genai.configure(api_key=self.api_key)
        return [m.name for m in genai.list_models()]

    async def list_models(self):
        if not self.api_key:
            return None
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._model_names),
                timeout=self.check_timeout * 2,
            )
        except Exception as exc:
            logger.error("Failed to list Gemini models: %s", exc)
            return None

    async def is_available(self) -> bool:
        if not self.api_key:
            return False
        try:
            names = await asyncio.wait_for(
                asyncio.to_thread(self._model_names),
                timeout=self.check_timeout,
            )
        except Exception as exc:
            logger.info("Gemini liveness check failed: %s", exc)
            return False
        return bool(names)
