"""Model fallback orchestration.

The orchestrator walks a ``ModelQueue`` in order and stops at the first
model that answers. Only access-class failures (the caller may not use that
model) advance the queue. Every other failure propagates at once: retrying
the same model, or hiding a quota problem behind a fallback, is deliberately
left to the caller.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import TYPE_CHECKING, Any, NoReturn

from gemini_guard.client.error_handler import ErrorClass, GenerationErrorHandler
from gemini_guard.constants import MAX_RAW_JSON_CHARS
from gemini_guard.core.types import (
    AttemptOutcome,
    Generation,
    GenerationAttempt,
    GenerationRequest,
    ModelQueue,
    RecoveredValue,
)
from gemini_guard.exceptions import (
    ConfigurationError,
    ExhaustedModelQueueError,
    GeminiGuardError,
)
from gemini_guard.parsing.recovery import recover, validate_recovered
from gemini_guard.telemetry import TelemetryContext

if TYPE_CHECKING:
    from gemini_guard.adapters.base import GenerationAdapter
    from gemini_guard.schemas import SchemaDefinition
    from gemini_guard.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class ModelFallbackOrchestrator:
    """Invokes a generation call across an ordered queue of models."""

    def __init__(
        self,
        adapter: GenerationAdapter | None = None,
        *,
        error_handler: GenerationErrorHandler | None = None,
        telemetry: TelemetryContextProtocol | None = None,
        max_raw_json_chars: int = MAX_RAW_JSON_CHARS,
    ) -> None:
        self.adapter = adapter
        self.error_handler = error_handler or GenerationErrorHandler()
        self.tele = telemetry or TelemetryContext()
        self.max_raw_json_chars = max_raw_json_chars

    # --- Core algorithm ---

    def invoke[T](self, queue: ModelQueue, call: Callable[[str], T]) -> Generation[T]:
        """Run ``call(model)`` for each model until one succeeds.

        Raises:
            ExhaustedModelQueueError: every model failed with an access error.
            APIError: a model failed for any other reason.
        """
        attempts: list[GenerationAttempt] = []
        with self.tele("orchestrator.invoke", models=len(queue)):
            for index, model in enumerate(queue):
                log.debug("Invoking model '%s' (%d/%d).", model, index + 1, len(queue))
                try:
                    value = call(model)
                except Exception as error:
                    self._record_failure(queue, index, error, attempts)
                    continue
                return self._succeed(model, value, attempts)
        raise ExhaustedModelQueueError(queue.models, tuple(attempts))

    async def ainvoke[T](
        self, queue: ModelQueue, call: Callable[[str], Awaitable[T]]
    ) -> Generation[T]:
        """Async variant of ``invoke`` with identical semantics."""
        attempts: list[GenerationAttempt] = []
        with self.tele("orchestrator.invoke", models=len(queue)):
            for index, model in enumerate(queue):
                log.debug("Invoking model '%s' (%d/%d).", model, index + 1, len(queue))
                try:
                    value = await call(model)
                except Exception as error:
                    self._record_failure(queue, index, error, attempts)
                    continue
                return self._succeed(model, value, attempts)
        raise ExhaustedModelQueueError(queue.models, tuple(attempts))

    def _succeed[T](
        self, model: str, value: T, attempts: list[GenerationAttempt]
    ) -> Generation[T]:
        attempts.append(GenerationAttempt(model, AttemptOutcome.SUCCESS))
        if len(attempts) > 1:
            log.info("Model '%s' answered after %d attempts.", model, len(attempts))
        return Generation(value=value, model_used=model, attempts=tuple(attempts))

    def _record_failure(
        self,
        queue: ModelQueue,
        index: int,
        error: Exception,
        attempts: list[GenerationAttempt],
    ) -> None:
        """Record a failed attempt; raise unless the next model should be tried."""
        model = queue.models[index]
        access_denied = not isinstance(error, GeminiGuardError) and (
            self.error_handler.classify(error) is ErrorClass.ACCESS
        )
        outcome = AttemptOutcome.OTHER_ERROR
        if access_denied:
            outcome = AttemptOutcome.ACCESS_DENIED
        attempts.append(GenerationAttempt(model, outcome, str(error)))

        if isinstance(error, GeminiGuardError):
            raise error

        if not access_denied:
            self.tele.count("non_access_errors")
            log.error("Model '%s' failed with a non-access error: %s", model, error)
            raise self.error_handler.to_api_error(error, model) from error

        if index == len(queue) - 1:
            self._exhausted(queue, attempts, error)

        self.tele.count("model_fallbacks")
        log.warning(
            "Model '%s' is not available (%s). Falling back to '%s'.",
            model,
            error,
            queue.models[index + 1],
        )

    def _exhausted(
        self, queue: ModelQueue, attempts: list[GenerationAttempt], error: Exception
    ) -> NoReturn:
        log.error("Every model in the queue was unavailable: %s", ", ".join(queue))
        raise ExhaustedModelQueueError(queue.models, tuple(attempts), error) from error

    # --- Adapter conveniences ---

    def _require_adapter(self) -> GenerationAdapter:
        if self.adapter is None:
            raise ConfigurationError("No generation adapter configured")
        return self.adapter

    def generate(
        self, request: GenerationRequest, queue: ModelQueue
    ) -> Generation[str]:
        """Raw response text for ``request`` from the first available model."""
        adapter = self._require_adapter()
        return self.invoke(queue, lambda model: adapter.generate_text(model, request))

    async def agenerate(
        self, request: GenerationRequest, queue: ModelQueue
    ) -> Generation[str]:
        adapter = self._require_adapter()
        return await self.ainvoke(
            queue, lambda model: adapter.agenerate_text(model, request)
        )

    def generate_json(
        self, request: GenerationRequest, queue: ModelQueue
    ) -> Generation[RecoveredValue]:
        """Generate and recover JSON from the response text.

        When the request carries a schema the recovered value is replaced by
        the validated pydantic model.
        """
        generation = self.generate(request, queue)
        recovered = self.recover_output(generation.value, request.schema)
        return self._with_value(generation, recovered)

    async def agenerate_json(
        self, request: GenerationRequest, queue: ModelQueue
    ) -> Generation[RecoveredValue]:
        generation = await self.agenerate(request, queue)
        recovered = self.recover_output(generation.value, request.schema)
        return self._with_value(generation, recovered)

    def recover_output(
        self, raw: str, schema: SchemaDefinition | None = None
    ) -> RecoveredValue:
        """Run response text through the recovery parser (and schema, if any)."""
        recovered = recover(raw, self.max_raw_json_chars)
        self.tele.metric("recovery.stage", recovered.stage.value)
        if recovered.was_repaired:
            log.info("Response needed repair (stage: %s).", recovered.stage.value)
        if schema is not None:
            recovered = validate_recovered(recovered, schema)
        return recovered

    @staticmethod
    def _with_value(generation: Generation[Any], value: Any) -> Generation[Any]:
        return Generation(
            value=value,
            model_used=generation.model_used,
            attempts=generation.attempts,
        )
