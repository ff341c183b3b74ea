"""Exceptions raised by the resilience layer.

Callers can rely on these to tell apart the terminal outcomes of a request:
an exhausted model queue, output that no repair stage could parse, content
that stayed unsafe after one rewrite, and everything else (``APIError``).
"""

from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from gemini_guard.core.types import GenerationAttempt


class GeminiGuardError(Exception):
    """Base exception for gemini_guard errors."""


class ConfigurationError(GeminiGuardError):
    """Raised when configuration is missing or invalid."""


class APIError(GeminiGuardError):
    """Raised for provider failures outside the designed recovery seams.

    Network failures, rate limits, quota errors and timeouts land here and
    are never retried by this layer.
    """

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail if detail is not None else message


class ExhaustedModelQueueError(GeminiGuardError):
    """Every model in the queue failed with an access-class error."""

    def __init__(
        self,
        models: tuple[str, ...],
        attempts: tuple[GenerationAttempt, ...] = (),
        last_error: BaseException | None = None,
    ) -> None:
        self.models = models
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"No model in the queue is available ({', '.join(models)}). "
            f"Last error: {last_error}"
        )


class UnparseableOutputError(GeminiGuardError):
    """All repair stages failed to produce a parseable value."""

    def __init__(self, raw_text: str, reason: str | None = None) -> None:
        self.raw_text = raw_text
        self.reason = reason
        preview = raw_text[:120].replace("\n", "\\n")
        message = f"Model output could not be parsed as JSON: {preview!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class OutputValidationError(GeminiGuardError):
    """Recovered output does not match the requested schema."""

    def __init__(self, schema_name: str, errors: str, value: typing.Any = None):
        self.schema_name = schema_name
        self.errors = errors
        self.value = value
        super().__init__(f"Output does not match schema '{schema_name}': {errors}")


class SafetyRejectedError(GeminiGuardError):
    """A content-policy rejection survived one rewrite-and-retry cycle."""

    def __init__(
        self,
        prompt: str,
        rewritten_prompt: str | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        self.prompt = prompt
        self.rewritten_prompt = rewritten_prompt
        self.last_error = last_error
        super().__init__(
            "Generation was rejected by the safety system after a prompt rewrite. "
            f"Last error: {last_error}"
        )


class InsufficientEvidenceError(GeminiGuardError):
    """The response cites fewer sources than the caller requires."""

    def __init__(self, found: int, required: int) -> None:
        self.found = found
        self.required = required
        super().__init__(
            f"Not enough sources in the response (found {found}, need {required})"
        )
