"""Oracle reading generation via the OpenAI chat completions API.

The request goes through ``core.backoff.execute`` so 429 responses are
retried with exponential backoff; the SDK's own retries are switched off so
they do not mask rate limits from the executor.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import openai
import pydantic
from fastapi import Depends

from core.backoff import execute
from core.errors import UpstreamError, ValidationError
from core.models import CompletionRequest
from core.prompt import ReadingPrompt
from sporacle.config import Settings, get_settings

logger = logging.getLogger(__name__)

_VALIDATION_MESSAGE = "Track names and artist names are required and should be arrays"


def validate_names(track_names: Any, artist_names: Any) -> CompletionRequest:
    """Both inputs must be present arrays of strings; empty arrays are fine."""
    try:
        return CompletionRequest.model_validate({"trackNames": track_names, "artistNames": artist_names})
    except pydantic.ValidationError as exc:
        raise ValidationError(_VALIDATION_MESSAGE) from exc


class ReadingGenerator:
    """Builds the reading prompt and submits it under the backoff policy."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[openai.AsyncOpenAI] = None,
        prompt: Optional[ReadingPrompt] = None,
    ):
        self._settings = settings
        self._client = client
        self._prompt = prompt or ReadingPrompt()

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Lazily create the SDK client so a missing key only fails on use."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._settings.openai_api_key, max_retries=0)
        return self._client

    async def build_and_submit(self, track_names: Sequence[str], artist_names: Sequence[str]) -> str:
        """Render the prompt for the given names and return the generated text verbatim.

        Raises
        ------
        ValidationError
            Either argument missing or not an array of strings. No request is made.
        RetriesExhausted
            The API kept answering 429 for the whole retry budget.
        UpstreamError
            Any other API failure, or a response without content.
        """
        names = validate_names(track_names, artist_names)
        messages = self._prompt.messages(names.trackNames, names.artistNames)
        settings = self._settings

        async def _create():
            return await self.client.chat.completions.create(
                model=settings.openai_model,
                messages=messages,
                max_tokens=settings.completion_max_tokens,
                temperature=settings.completion_temperature,
                n=1,
            )

        try:
            response = await execute(
                _create,
                max_retries=settings.backoff_max_retries,
                base_delay=settings.backoff_base_delay,
            )
        except openai.APIStatusError as exc:
            raise UpstreamError(upstream_status=exc.status_code) from exc
        except openai.OpenAIError as exc:
            raise UpstreamError() from exc

        if not response.choices or response.choices[0].message.content is None:
            raise UpstreamError("Completion returned no content")

        logger.info(
            "OpenAI response generated for tracks: %d artists: %d",
            len(names.trackNames),
            len(names.artistNames),
        )
        return response.choices[0].message.content


def get_reading_generator(settings: Settings = Depends(get_settings)) -> ReadingGenerator:
    """FastAPI dependency; overridden in tests."""
    return ReadingGenerator(settings)
