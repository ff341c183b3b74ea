"""Deterministic adapter for tests, examples and dry runs.

Responses are scripted per model and consumed in order. A scripted exception
is raised instead of returned, which is how tests simulate access denials,
safety rejections and outages.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable, Mapping
import json
from typing import TYPE_CHECKING

from gemini_guard.core.types import ImageResult

if TYPE_CHECKING:
    from gemini_guard.core.types import GenerationRequest

type Scripted = str | BaseException
type ScriptedImage = ImageResult | BaseException


class MockAdapter:
    """Scriptable text and image adapter that records every call."""

    def __init__(
        self,
        text_responses: Mapping[str, Iterable[Scripted] | Scripted] | None = None,
        image_responses: Iterable[ScriptedImage] = (),
        default_text: str | None = None,
    ) -> None:
        self._text: dict[str, deque[Scripted]] = defaultdict(deque)
        for model, scripted in (text_responses or {}).items():
            self.script(model, scripted)
        self._images: deque[ScriptedImage] = deque(image_responses)
        self._default_text = default_text
        self.text_calls: list[tuple[str, GenerationRequest]] = []
        self.image_calls: list[tuple[str, str]] = []

    def script(self, model: str, responses: Iterable[Scripted] | Scripted) -> None:
        """Queue more responses for ``model``."""
        if isinstance(responses, str | BaseException):
            responses = [responses]
        self._text[model].extend(responses)

    def generate_text(self, model: str, request: GenerationRequest) -> str:
        self.text_calls.append((model, request))
        queue = self._text.get(model)
        if queue:
            item = queue.popleft()
        elif self._default_text is not None:
            item = self._default_text
        else:
            item = json.dumps({"model": model, "echo": request.input_text[:200]})
        if isinstance(item, BaseException):
            raise item
        return item

    async def agenerate_text(self, model: str, request: GenerationRequest) -> str:
        return self.generate_text(model, request)

    def generate_image(self, model: str, prompt: str) -> ImageResult:
        self.image_calls.append((model, prompt))
        if self._images:
            item = self._images.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        return ImageResult(data=b"mock-image", prompt=prompt, model_used=model)
