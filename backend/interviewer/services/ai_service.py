# /interviewer/services/ai_service.py

import asyncio
import logging
from google import genai
from google.genai.types import Content, GenerateContentConfig, HttpOptions, Part
from openai import AsyncOpenAI
from typing import List, Optional, Sequence, Tuple

from interviewer.config.settings import settings
from interviewer.utils.circuit_breaker import CircuitBreaker
from interviewer.utils.exceptions import UpstreamFailure
from interviewer.utils.metrics import ai_requests_counter

# This service is the single text-generation capability used by the engine:
# a prompt (plus optional prior turns) in, generated text out. Gemini is tried
# first and OpenAI is the failover. It gives no structured-output guarantee;
# callers interpret yes/no or one-word replies themselves.

logger = logging.getLogger(__name__)

# (role, text) with role "user" or "model"
PriorTurn = Tuple[str, str]


class AIService:
    def __init__(
        self,
        gemini_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        timeout: float = 20.0
    ):
        self.timeout = timeout

        if gemini_api_key:
            http_options = HttpOptions(api_version='v1')
            self.gemini_client = genai.Client(api_key=gemini_api_key, http_options=http_options)
            self.gemini_model = settings.gemini_model
            logger.info(f"Using Gemini model: {self.gemini_model}")
        else:
            self.gemini_client = None
            self.gemini_model = None

        if openai_api_key:
            self.openai_client = AsyncOpenAI(api_key=openai_api_key, timeout=timeout)
        else:
            self.openai_client = None

        self.gemini_breaker = CircuitBreaker("gemini")
        self.openai_breaker = CircuitBreaker("openai")

    async def generate(self, prompt: str, prior_turns: Optional[Sequence[PriorTurn]] = None) -> str:
        """
        Generate text for `prompt`, continuing the optional prior turns.

        Each provider call is bounded by the configured timeout. Raises
        UpstreamFailure when no provider produced text.
        """
        turns = list(prior_turns or [])
        failures: List[str] = []

        if self.gemini_client:
            try:
                text = await self.gemini_breaker.call(self._bounded, self._generate_gemini_response, prompt, turns)
                if text:
                    ai_requests_counter.labels(model="gemini", status="success").inc()
                    return text
                failures.append("gemini: empty response")
            except Exception as e:
                logger.error(f"Gemini API call failed: {type(e).__name__}: {e}")
                failures.append(f"gemini: {type(e).__name__}")
            ai_requests_counter.labels(model="gemini", status="error").inc()

        if self.openai_client:
            try:
                text = await self.openai_breaker.call(self._bounded, self._generate_openai_response, prompt, turns)
                if text:
                    ai_requests_counter.labels(model="openai", status="success").inc()
                    return text
                failures.append("openai: empty response")
            except Exception as e:
                logger.error(f"OpenAI fallback failed: {type(e).__name__}: {e}")
                failures.append(f"openai: {type(e).__name__}")
            ai_requests_counter.labels(model="openai", status="error").inc()

        if not failures:
            failures.append("no text-generation provider configured")
        raise UpstreamFailure(f"Text generation failed ({'; '.join(failures)})")

    async def chat(self, question: str, history: Sequence[PriorTurn]) -> str:
        """Free-form chat turn used by the /chat passthrough."""
        return await self.generate(question, prior_turns=history)

    async def _bounded(self, func, prompt: str, turns: List[PriorTurn]) -> str:
        return await asyncio.wait_for(func(prompt, turns), timeout=self.timeout)

    async def _generate_gemini_response(self, prompt: str, turns: List[PriorTurn]) -> str:
        contents = [Content(role=role, parts=[Part(text=text)]) for role, text in turns]
        contents.append(Content(role="user", parts=[Part(text=prompt)]))

        response = await asyncio.to_thread(
            self.gemini_client.models.generate_content,
            model=self.gemini_model,
            contents=contents,
            config=GenerateContentConfig(temperature=settings.ai_temperature)
        )
        return (response.text or "").strip()

    async def _generate_openai_response(self, prompt: str, turns: List[PriorTurn]) -> str:
        messages = [
            {"role": "assistant" if role == "model" else "user", "content": text}
            for role, text in turns
        ]
        messages.append({"role": "user", "content": prompt})

        response = await self.openai_client.chat.completions.create(
            model=settings.openai_model, messages=messages, temperature=settings.ai_temperature
        )
        return (response.choices[0].message.content or "").strip()


# Globally accessible instance
ai_service = AIService(
    gemini_api_key=settings.gemini_api_key,
    openai_api_key=settings.openai_api_key,
    timeout=settings.ai_timeout_seconds
)
