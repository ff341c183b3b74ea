"""Staged recovery of JSON from generative text output.

The service reliably breaks JSON in three ways: prose after the closing
brace, raw newlines inside string values, and missing commas between objects
in an array. ``recover`` tries a plain parse first and then applies one
targeted repair per stage, parsing again after each:

1. direct parse of the (length-capped) text
2. bracket extraction with balanced-bracket truncation
3. escaping of control characters inside strings
4. structural repair (trailing commas, missing object separators)

Every repair function is pure and total: it never raises on malformed input,
it only returns its best-effort text for the next stage.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from gemini_guard.constants import MAX_RAW_JSON_CHARS
from gemini_guard.core.types import RecoveredValue, RecoveryStage
from gemini_guard.exceptions import OutputValidationError, UnparseableOutputError

if TYPE_CHECKING:
    from pydantic import BaseModel

    from gemini_guard.schemas import SchemaDefinition

log = logging.getLogger(__name__)

_OPEN_TO_CLOSE = {"{": "}", "[": "]"}
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def recover(raw: str, max_length: int = MAX_RAW_JSON_CHARS) -> RecoveredValue:
    """Parse ``raw`` as JSON, repairing known malformations on the way.

    Raises:
        UnparseableOutputError: when no stage yields valid JSON. The original
            text is attached for diagnosis.
    """
    if not raw or not raw.strip():
        raise UnparseableOutputError(raw or "", reason="empty response")

    text = raw.strip()[:max_length]

    try:
        return RecoveredValue(json.loads(text), RecoveryStage.DIRECT)
    except json.JSONDecodeError as e:
        log.debug("Direct JSON parse failed: %s", e)

    slices = _candidate_slices(text)
    if not slices:
        raise UnparseableOutputError(raw, reason="no JSON object found")

    last_error: json.JSONDecodeError | None = None
    for sliced in slices:
        candidate = truncate_balanced(sliced)
        for stage, repair in _STAGES:
            candidate = repair(candidate)
            try:
                value = json.loads(candidate)
            except json.JSONDecodeError as e:
                last_error = e
                continue
            log.debug("Recovered JSON at stage '%s'.", stage.value)
            return RecoveredValue(value, stage)

    log.warning("All JSON repair stages failed: %s", last_error)
    raise UnparseableOutputError(raw, reason=str(last_error))


def recover_model(
    raw: str,
    schema: SchemaDefinition,
    max_length: int = MAX_RAW_JSON_CHARS,
) -> BaseModel:
    """Recover JSON and validate it against a schema definition."""
    return validate_recovered(recover(raw, max_length), schema).value


def validate_recovered(
    recovered: RecoveredValue, schema: SchemaDefinition
) -> RecoveredValue:
    """Replace the parsed value with its validated model, keeping the stage.

    Raises:
        OutputValidationError: the value does not match ``schema``. Defaults
            are never substituted for missing or mistyped fields.
    """
    try:
        model = schema.validate(recovered.value)
    except ValidationError as e:
        raise OutputValidationError(schema.name, str(e), recovered.value) from e
    return RecoveredValue(model, recovered.stage)


def extract_bracketed(text: str) -> str | None:
    """Slice from the first opener to the last matching closer.

    An object opener pairs with the last ``}``, an array opener with the last
    ``]``. Returns None when there is no such pair.
    """
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    end = text.rfind(_OPEN_TO_CLOSE[text[start]])
    if end <= start:
        return None
    return text[start : end + 1]


def _candidate_slices(text: str) -> list[str]:
    """Bracketed slices to try, the first-opener slice before the object slice.

    Output that opens with prose holding a bracketed aside still yields the
    first ``{`` to last ``}`` slice once the ``[`` slice has failed.
    """
    slices: list[str] = []
    sliced = extract_bracketed(text)
    if sliced is not None:
        slices.append(sliced)
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start and text[start : end + 1] not in slices:
        slices.append(text[start : end + 1])
    return slices


def truncate_balanced(text: str) -> str:
    """Cut ``text`` after the last point where every bracket is closed.

    String contents and escaped characters are ignored. Depths never drop
    below zero, so stray closers cannot make the scan go negative.
    """
    in_string = False
    escaped = False
    brace_depth = 0
    bracket_depth = 0
    last_balanced = -1

    for i, char in enumerate(text):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = in_string
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            brace_depth += 1
        elif char == "}":
            brace_depth = max(0, brace_depth - 1)
        elif char == "[":
            bracket_depth += 1
        elif char == "]":
            bracket_depth = max(0, bracket_depth - 1)

        if brace_depth == 0 and bracket_depth == 0:
            last_balanced = i

    if last_balanced == -1:
        return text
    return text[: last_balanced + 1]


def escape_control_characters(text: str) -> str:
    """Escape raw newlines, carriage returns and tabs inside JSON strings."""
    out: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            out.append(char)
            escaped = in_string
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if in_string and char in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[char])
            continue
        out.append(char)

    return "".join(out)


def repair_structure(text: str) -> str:
    """Drop trailing commas and insert commas between adjacent array objects."""
    out: list[str] = []
    in_string = False
    escaped = False
    stack: list[str] = []

    for i, char in enumerate(text):
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            out.append(char)
            escaped = in_string
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if in_string:
            out.append(char)
            continue

        if char == "," and _next_significant(text, i + 1) in ("]", "}"):
            continue

        if char in "[{":
            stack.append(char)
        elif char in "]}":
            if stack:
                stack.pop()
            if (
                char == "}"
                and stack
                and stack[-1] == "["
                and _next_significant(text, i + 1) == "{"
            ):
                out.append("},")
                continue

        out.append(char)

    return "".join(out)


_STAGES = (
    (RecoveryStage.BRACKET_EXTRACTION, lambda s: s),
    (RecoveryStage.ESCAPE_REPAIR, escape_control_characters),
    (RecoveryStage.STRUCTURAL_REPAIR, repair_structure),
)


def _next_significant(text: str, start: int) -> str | None:
    for j in range(start, len(text)):
        if not text[j].isspace():
            return text[j]
    return None
