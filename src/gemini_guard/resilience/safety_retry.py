"""One-shot prompt rewrite after a content-policy rejection."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TYPE_CHECKING

from gemini_guard.client.error_handler import ErrorClass, GenerationErrorHandler
from gemini_guard.exceptions import APIError, GeminiGuardError, SafetyRejectedError
from gemini_guard.prompts import rewrite_request
from gemini_guard.telemetry import TelemetryContext

if TYPE_CHECKING:
    from gemini_guard.core.types import ModelQueue
    from gemini_guard.resilience.model_fallback import ModelFallbackOrchestrator
    from gemini_guard.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class SafetyRetryCycle:
    """Rewrite an unsafe prompt once and try again.

    ``generate`` is called at most twice per cycle. The rewrite itself is a
    text call routed through the orchestrator over ``rewrite_queue``, so it
    gets model fallback like any other request.
    """

    def __init__(
        self,
        orchestrator: ModelFallbackOrchestrator,
        rewrite_queue: ModelQueue,
        *,
        error_handler: GenerationErrorHandler | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.rewrite_queue = rewrite_queue
        self.error_handler = error_handler or GenerationErrorHandler()
        self.tele = telemetry or TelemetryContext()

    def generate[T](self, prompt: str, generate: Callable[[str], T]) -> T:
        """Run ``generate(prompt)``, rewriting the prompt once if it is rejected.

        Raises:
            SafetyRejectedError: the rewritten prompt was rejected too.
        """
        try:
            return generate(prompt)
        except Exception as error:
            if not self._is_safety_violation(error):
                raise
            log.warning("Prompt rejected by the safety system; rewriting once.")
            first_error = error

        rewritten = self.rewrite(prompt)
        self.tele.count("safety.rewrites")
        try:
            return generate(rewritten)
        except Exception as error:
            if not self._is_safety_violation(error):
                raise
            log.error("Rewritten prompt was rejected by the safety system as well.")
            raise SafetyRejectedError(prompt, rewritten, error) from first_error

    def rewrite(self, prompt: str) -> str:
        """Ask the rewrite model for a safe version of ``prompt``.

        Failures of the rewrite call propagate; an empty rewrite is an
        ``APIError``.
        """
        request = rewrite_request(prompt)
        generation = self.orchestrator.generate(request, self.rewrite_queue)
        rewritten = (generation.value or "").strip()
        if not rewritten:
            raise APIError(
                f"Prompt rewrite on model '{generation.model_used}' returned no text"
            )
        log.debug("Prompt rewritten by '%s'.", generation.model_used)
        return rewritten

    def _is_safety_violation(self, error: Exception) -> bool:
        # Parser and configuration errors can quote model text that mentions
        # "safety"; only provider failures are classified.
        if isinstance(error, GeminiGuardError) and not isinstance(error, APIError):
            return False
        return self.error_handler.classify(error) is ErrorClass.SAFETY
