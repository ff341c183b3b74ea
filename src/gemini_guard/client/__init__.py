"""Supporting components for talking to the generative service."""

from .error_handler import ErrorClass, GenerationErrorHandler

__all__ = ["ErrorClass", "GenerationErrorHandler"]
