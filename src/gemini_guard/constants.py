"""
Project-wide constants for gemini_guard
"""  # noqa: D200, D212, D415

# ==============================================================================
# Models
# ==============================================================================

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_REWRITE_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "imagen-3.0-generate-002"

# Tried after the primary and any configured fallbacks
DEFAULT_MODEL_FALLBACKS = ("gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash")

# ==============================================================================
# Output recovery
# ==============================================================================

MAX_RAW_JSON_CHARS = 200_000

# ==============================================================================
# Corpus comparison
# ==============================================================================

MAX_CHECK_CHUNK_CHARS = 18_000
DUPLICATE_THRESHOLD = 65  # 0-100 scale
MATCH_LIMIT = 5
CHUNK_EXCERPT_CHARS = 280
CHUNK_CONTENT_CHARS = 400
CANDIDATE_CACHE_TTL = 5 * 60  # seconds

# ==============================================================================
# Editorial workflows
# ==============================================================================

MIN_SOURCES = 20
MAX_ENTRY_CONTENT_CHARS = 8_000
MAX_EXCERPT_CHARS = 320

# ==============================================================================
# Coordinates
# ==============================================================================

MIN_COORDINATE_CONFIDENCE = 0.45
COORDINATE_PRECISION = 6  # decimal places
