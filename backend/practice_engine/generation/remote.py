from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from core.config import (
    GENERATION_MAX_TOKENS,
    GENERATION_MODEL,
    GENERATION_TEMPERATURE,
    GENERATION_TIMEOUT_SEC,
    OPENAI_API_KEY,
)
from practice_engine.errors import GenerationError
from practice_engine.generation.prompts import build_messages, build_system_prompt
from practice_engine.models import Message, Scenario
from practice_engine.persona import build_directive, persona_for

logger = logging.getLogger("practice_engine.generation.remote")


class GenerationRequest(BaseModel):
    user_input: str
    scenario: Scenario
    history: list[Message] = Field(default_factory=list)
    is_first_turn: bool = False

    model_config = {"arbitrary_types_allowed": True}


class GenerationReply(BaseModel):
    text: str = Field(min_length=1)


class GenerationService(Protocol):
    async def generate(self, request: GenerationRequest) -> str:
        ...


class OpenAIGenerationService:
    """
    Counterpart replies from an OpenAI chat model.
    Raises GenerationError on timeout, API failure, or an empty reply.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str = GENERATION_MODEL,
        timeout_sec: float = GENERATION_TIMEOUT_SEC,
        max_tokens: int = GENERATION_MAX_TOKENS,
        temperature: float = GENERATION_TEMPERATURE,
    ):
        self.client = client or AsyncOpenAI(api_key=OPENAI_API_KEY or "")
        self.model = model
        self.timeout_sec = max(0.01, float(timeout_sec))
        self.max_tokens = int(max_tokens)
        self.temperature = float(temperature)

    def _messages(self, request: GenerationRequest) -> list[dict[str, str]]:
        directive = build_directive(
            persona_for(request.scenario.persona),
            request.scenario.difficulty.value,
        )
        system_prompt = build_system_prompt(request.scenario, directive, request.is_first_turn)
        return [
            {"role": "system", "content": system_prompt},
            *build_messages(request.history),
            {"role": "user", "content": request.user_input},
        ]

    async def generate(self, request: GenerationRequest) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=self._messages(request),
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("generation timeout | timeout_sec=%s", self.timeout_sec)
            raise GenerationError("timeout") from exc
        except Exception as exc:
            logger.warning("generation failure | err=%s", exc)
            raise GenerationError(str(exc) or exc.__class__.__name__) from exc

        try:
            content = response.choices[0].message.content
            reply = GenerationReply(text=str(content or "").strip())
        except (AttributeError, IndexError, TypeError, ValidationError) as exc:
            logger.warning("generation malformed reply | err=%s", exc)
            raise GenerationError("malformed reply") from exc

        return reply.text


def build_generation_service() -> GenerationService | None:
    if not OPENAI_API_KEY:
        logger.info("no OPENAI_API_KEY configured; remote generation disabled")
        return None
    return OpenAIGenerationService()
