"""Local recovery seams: model fallback and safety rewrite."""

from .model_fallback import ModelFallbackOrchestrator
from .safety_retry import SafetyRetryCycle

__all__ = ["ModelFallbackOrchestrator", "SafetyRetryCycle"]
