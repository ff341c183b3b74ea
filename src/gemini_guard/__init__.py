"""Resilience layer between an editorial pipeline and a generative AI service."""

import importlib.metadata
import logging

from gemini_guard.comparison import (
    CandidateCache,
    CorpusComparator,
    build_chunks,
    merge_verdicts,
)
from gemini_guard.config import FrozenConfig, ResolvedConfig, resolve_config
from gemini_guard.core.types import (
    CoordinateCandidate,
    Generation,
    GenerationRequest,
    ImageResult,
    ModelQueue,
    RecoveredValue,
    RecoveryStage,
    SimilarityMatch,
    SimilarityVerdict,
)
from gemini_guard.exceptions import (
    APIError,
    ConfigurationError,
    ExhaustedModelQueueError,
    GeminiGuardError,
    InsufficientEvidenceError,
    OutputValidationError,
    SafetyRejectedError,
    UnparseableOutputError,
)
from gemini_guard.geo import CoordinateValidator, StaticRegionCenterLookup
from gemini_guard.parsing import recover, recover_model
from gemini_guard.resilience import ModelFallbackOrchestrator, SafetyRetryCycle
from gemini_guard.telemetry import TelemetryContext, TelemetryReporter
from gemini_guard.workflows import EditorialWorkflows

# Version handling
try:
    __version__ = importlib.metadata.version("gemini-guard")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# Prevents 'No handler found' errors when the app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Workflows
    "EditorialWorkflows",
    # Resilience mechanisms
    "ModelFallbackOrchestrator",
    "SafetyRetryCycle",
    "CorpusComparator",
    "CandidateCache",
    "CoordinateValidator",
    "StaticRegionCenterLookup",
    "build_chunks",
    "merge_verdicts",
    "recover",
    "recover_model",
    # Types
    "CoordinateCandidate",
    "Generation",
    "GenerationRequest",
    "ImageResult",
    "ModelQueue",
    "RecoveredValue",
    "RecoveryStage",
    "SimilarityMatch",
    "SimilarityVerdict",
    # Configuration
    "FrozenConfig",
    "ResolvedConfig",
    "resolve_config",
    # Exceptions
    "GeminiGuardError",
    "APIError",
    "ConfigurationError",
    "ExhaustedModelQueueError",
    "InsufficientEvidenceError",
    "OutputValidationError",
    "SafetyRejectedError",
    "UnparseableOutputError",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
]
