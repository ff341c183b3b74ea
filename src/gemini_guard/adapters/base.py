"""Provider adapter protocols.

Adapters are the only code that talks to the generative service. They raise
the provider's own errors unchanged; classification into access, safety and
other failures happens in ``gemini_guard.client.error_handler``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gemini_guard.core.types import GenerationRequest, ImageResult


class BlockedContentError(Exception):
    """The provider returned no content because a safety filter blocked it."""

    def __init__(self, message: str, block_reason: str | None = None) -> None:
        super().__init__(message)
        self.block_reason = block_reason


@runtime_checkable
class GenerationAdapter(Protocol):
    """Text generation against a named model."""

    def generate_text(self, model: str, request: GenerationRequest) -> str:
        """Return the raw response text for ``request`` on ``model``."""
        ...

    async def agenerate_text(self, model: str, request: GenerationRequest) -> str:
        """Async counterpart of ``generate_text``."""
        ...


@runtime_checkable
class ImageGenerationAdapter(Protocol):
    """Image generation against a named model."""

    def generate_image(self, model: str, prompt: str) -> ImageResult:
        """Return one image for ``prompt`` on ``model``."""
        ...
