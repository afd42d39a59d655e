"""
Gemini-backed Content Provider.

Talks to the Generative Language REST API (``generateContent``) over
httpx, asking for JSON output constrained by a response schema. Transient
failures (timeouts, 5xx, connection errors) are retried with exponential
backoff; 4xx responses are not retried.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from tutoria.core.exceptions import ContentProviderError
from tutoria.core.models import (
    SUBJECTS,
    Activity,
    CUSTOM_SUBJECT,
    ProficiencyLevel,
    Question,
    Student,
    StudentAnswer,
    TutorInsights,
)

from .prompts import (
    INSIGHTS_SCHEMA,
    QUESTION_LIST_SCHEMA,
    build_activity_prompt,
    build_insights_prompt,
    build_instructions_prompt,
    build_placement_prompt,
)
from .provider import (
    MAX_CUSTOM_QUESTIONS,
    PLACEMENT_TEST_SIZE,
    parse_insights,
    parse_questions,
    performance_summary,
)

PLACEMENT_ERROR = "Falha ao gerar o teste de nivelamento. Tente novamente."
ACTIVITY_ERROR = "Falha ao gerar a atividade. Por favor, tente novamente."
INSIGHTS_ERROR = "Falha ao analisar o progresso do aluno."
INSTRUCTIONS_ERROR = (
    "Falha ao gerar a atividade personalizada. Verifique as instruções e tente novamente."
)


class GeminiContentProvider:
    """HTTP client for Gemini content generation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        insights_model: str = "gemini-2.5-pro",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 60.0,
        retry_attempts: int = 3,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Generative Language API key
            model: Model for placement tests and activities
            insights_model: Model for progress insights
            base_url: REST API base URL
            timeout_seconds: Per-request timeout
            retry_attempts: Attempts per call on transient failures
        """
        if not api_key:
            raise ValueError("A Gemini API key is required")
        self.api_key = api_key
        self.model = model
        self.insights_model = insights_model
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = max(1, retry_attempts)
        self.client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @classmethod
    def from_settings(cls, settings: Any) -> GeminiContentProvider:
        return cls(
            api_key=settings.gemini_api_key or "",
            model=settings.ai_model,
            insights_model=settings.insights_model,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.request_timeout_seconds,
            retry_attempts=settings.retry_attempts,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    # =========================================================================
    # Content Provider operations
    # =========================================================================

    async def generate_placement_test(self, grade: str) -> list[Question]:
        prompt = build_placement_prompt(grade, list(SUBJECTS))
        data = await self._generate_json(prompt, QUESTION_LIST_SCHEMA, self.model, PLACEMENT_ERROR)
        questions = parse_questions(data, PLACEMENT_ERROR)
        if not questions:
            raise ContentProviderError(PLACEMENT_ERROR, ValueError("Empty placement test"))
        if len(questions) != PLACEMENT_TEST_SIZE:
            logger.warning(
                f"Placement test has {len(questions)} questions, expected {PLACEMENT_TEST_SIZE}"
            )
        return questions

    async def generate_activity(self, topic: str, subject: str, grade: str) -> list[Question]:
        prompt = build_activity_prompt(topic, subject, grade)
        data = await self._generate_json(prompt, QUESTION_LIST_SCHEMA, self.model, ACTIVITY_ERROR)
        questions = parse_questions(data, ACTIVITY_ERROR, subject=subject)
        if not questions:
            raise ContentProviderError(ACTIVITY_ERROR, ValueError(f"No questions for '{topic}'"))
        return questions

    async def generate_insights(
        self,
        student: Student,
        activities: Sequence[Activity],
        answers: Sequence[StudentAnswer],
    ) -> TutorInsights:
        prompt = build_insights_prompt(
            name=student.name,
            grade=student.grade,
            placement=student.nivelamento_results,
            performance=performance_summary(activities, answers),
            levels=[level.value for level in ProficiencyLevel],
        )
        data = await self._generate_json(
            prompt, INSIGHTS_SCHEMA, self.insights_model, INSIGHTS_ERROR
        )
        return parse_insights(data, INSIGHTS_ERROR)

    async def generate_from_instructions(
        self,
        title: str,
        instructions: str,
        grade: str,
        source_text: str | None = None,
    ) -> list[Question]:
        prompt = build_instructions_prompt(title, instructions, grade, source_text, CUSTOM_SUBJECT)
        data = await self._generate_json(
            prompt, QUESTION_LIST_SCHEMA, self.model, INSTRUCTIONS_ERROR
        )
        return parse_questions(data, INSTRUCTIONS_ERROR)[:MAX_CUSTOM_QUESTIONS]

    # =========================================================================
    # Transport
    # =========================================================================

    async def _generate_json(
        self,
        prompt: str,
        schema: dict[str, Any],
        model: str,
        user_message: str,
    ) -> Any:
        """
        Run one generateContent call and decode the JSON answer.

        Raises:
            ContentProviderError: On transport failure or an unusable response
        """
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        try:
            body = await self._post_with_retry(f"{self.base_url}/models/{model}:generateContent", payload)
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e}")
            raise ContentProviderError(user_message, e) from e

        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
            return json.loads(text)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Unusable Gemini response: {e}")
            raise ContentProviderError(user_message, e) from e

    async def _post_with_retry(self, url: str, payload: dict[str, Any]) -> Any:
        last_error: httpx.HTTPError | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                wait_time = 2 ** attempt
                logger.warning(
                    f"Gemini timeout on attempt {attempt + 1}/{self.retry_attempts}. "
                    f"Retrying in {wait_time}s..."
                )
                if attempt < self.retry_attempts - 1:
                    await asyncio.sleep(wait_time)

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code >= 500:
                    wait_time = 2 ** attempt
                    logger.warning(
                        f"Gemini server error {e.response.status_code} on attempt "
                        f"{attempt + 1}/{self.retry_attempts}. Retrying in {wait_time}s..."
                    )
                    if attempt < self.retry_attempts - 1:
                        await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Gemini client error: {e.response.status_code}")
                    raise

            except httpx.RequestError as e:
                last_error = e
                wait_time = 2 ** attempt
                logger.warning(
                    f"Gemini request error on attempt {attempt + 1}/{self.retry_attempts}: {e}. "
                    f"Retrying in {wait_time}s..."
                )
                if attempt < self.retry_attempts - 1:
                    await asyncio.sleep(wait_time)

        assert last_error is not None
        raise last_error
