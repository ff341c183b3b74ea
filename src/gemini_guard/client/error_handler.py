"""Classification of errors raised by the generative service"""

from collections.abc import Iterator
from enum import Enum
from typing import Any

from ..exceptions import APIError

ACCESS_STATUS_CODES = frozenset({403, 404})
ACCESS_CODES = frozenset({"model_not_found", "permission_denied", "not_found"})
ACCESS_TERMS = ("does not have access", "model_not_found", "model not found")

SAFETY_CODES = frozenset(
    {"content_policy_violation", "safety", "prohibited_content", "image_safety"}
)
SAFETY_TERMS = ("safety", "rejected by the safety system", "content_policy_violation")


class ErrorClass(str, Enum):
    """How the resilience layer reacts to a failure."""

    ACCESS = "access"  # try the next model
    SAFETY = "safety"  # rewrite the prompt once
    OTHER = "other"  # propagate


class GenerationErrorHandler:
    """Classifies and enriches errors from generation requests"""

    def classify(self, error: BaseException) -> ErrorClass:
        """Classify an error, looking through its cause chain"""
        for err in _cause_chain(error):
            if self.is_access_error(err):
                return ErrorClass.ACCESS
            if self.is_safety_violation(err):
                return ErrorClass.SAFETY
        return ErrorClass.OTHER

    def is_access_error(self, error: BaseException) -> bool:
        """True when the caller lacks access to the requested model"""
        if _status_code(error) in ACCESS_STATUS_CODES:
            return True
        if _error_codes(error) & ACCESS_CODES:
            return True
        message = str(error).lower()
        return any(term in message for term in ACCESS_TERMS)

    def is_safety_violation(self, error: BaseException) -> bool:
        """True when the service refused generation on content-policy grounds"""
        if _error_codes(error) & SAFETY_CODES:
            return True
        message = str(error).lower()
        return any(term in message for term in SAFETY_TERMS)

    def to_api_error(self, error: BaseException, model: str | None = None) -> APIError:
        """Describe a provider error for propagation to the caller"""
        where = f" on model '{model}'" if model else ""
        lowered = str(error).lower()
        status = _status_code(error)
        if "timeout" in lowered or isinstance(error, TimeoutError):
            message = f"Generation timed out{where}. Original error: {error}"
        elif status == 429 or "quota" in lowered or "rate limit" in lowered:
            message = f"Rate limit or quota exceeded{where}. Original error: {error}"
        else:
            message = f"Content generation failed{where}: {error}"
        return APIError(message, detail=str(error))


def _cause_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def _status_code(error: BaseException) -> int | None:
    # google-genai exposes the HTTP status as `code`; other SDKs use
    # `status_code`, `status` or `response.status_code`.
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _error_codes(error: BaseException) -> set[str]:
    codes: set[str] = set()
    for attr in ("code", "status", "reason", "finish_reason", "block_reason"):
        value: Any = getattr(error, attr, None)
        value = getattr(value, "name", value)
        if isinstance(value, str) and value:
            codes.add(value.lower())
    nested = getattr(error, "error", None)
    if isinstance(nested, dict) and isinstance(nested.get("code"), str):
        codes.add(nested["code"].lower())
    return codes
