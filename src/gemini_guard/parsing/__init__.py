"""Recovery of JSON from malformed model output."""

from .recovery import (
    escape_control_characters,
    extract_bracketed,
    recover,
    recover_model,
    repair_structure,
    truncate_balanced,
    validate_recovered,
)

__all__ = [
    "escape_control_characters",
    "extract_bracketed",
    "recover",
    "recover_model",
    "repair_structure",
    "truncate_balanced",
    "validate_recovered",
]
