"""Google GenAI adapter.

Thin wrapper over ``google.genai``: it builds the request config, calls the
SDK and turns blocked responses into ``BlockedContentError``. Provider errors
(``google.genai.errors.APIError`` and subclasses) are left to propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from google import genai
from google.genai import types

from gemini_guard.adapters.base import BlockedContentError
from gemini_guard.core.types import ImageResult

if TYPE_CHECKING:
    from gemini_guard.core.types import GenerationRequest

log = logging.getLogger(__name__)


class GeminiAdapter:
    """Generation adapter backed by ``genai.Client``."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: genai.Client | None = None,
        image_aspect_ratio: str = "9:16",
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._aspect_ratio = image_aspect_ratio

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
        )
        if request.instructions:
            config.system_instruction = request.instructions
        if request.schema is not None:
            config.response_mime_type = "application/json"
            config.response_schema = request.schema.model
        else:
            config.response_mime_type = "text/plain"
        return config

    def generate_text(self, model: str, request: GenerationRequest) -> str:
        response = self._client.models.generate_content(
            model=model,
            contents=request.input_text,
            config=self._build_config(request),
        )
        return self._extract_text(response, model)

    async def agenerate_text(self, model: str, request: GenerationRequest) -> str:
        response = await self._client.aio.models.generate_content(
            model=model,
            contents=request.input_text,
            config=self._build_config(request),
        )
        return self._extract_text(response, model)

    def generate_image(self, model: str, prompt: str) -> ImageResult:
        response = self._client.models.generate_images(
            model=model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                aspect_ratio=self._aspect_ratio,
                include_rai_reason=True,
            ),
        )
        generated = list(response.generated_images or [])
        if not generated or generated[0].image is None:
            reason = generated[0].rai_filtered_reason if generated else None
            raise BlockedContentError(
                f"Image for model '{model}' was rejected by the safety system: "
                f"{reason or 'no image returned'}",
                block_reason="IMAGE_SAFETY",
            )
        image = generated[0].image
        return ImageResult(
            data=image.image_bytes,
            url=image.gcs_uri,
            mime_type=image.mime_type or "image/png",
            prompt=prompt,
            model_used=model,
        )

    def _extract_text(self, response: Any, model: str) -> str:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            reason = getattr(block_reason, "name", str(block_reason))
            raise BlockedContentError(
                f"Prompt for model '{model}' was blocked by the safety system: "
                f"{reason}",
                block_reason=reason,
            )
        text = response.text or ""
        log.debug("Model '%s' returned %d characters.", model, len(text))
        return text
