"""Provider adapters.

``GeminiAdapter`` lives in ``gemini_guard.adapters.gemini`` and is imported
on demand, when ``use_real_api`` is set.
"""

from .base import BlockedContentError, GenerationAdapter, ImageGenerationAdapter
from .mock import MockAdapter

__all__ = [
    "BlockedContentError",
    "GenerationAdapter",
    "ImageGenerationAdapter",
    "MockAdapter",
]
