"""Editorial content helpers.

An entry's body is five titled sections separated by blank lines::

    Mito
    <text>

    Historia
    <text>

``build_content`` and ``parse_content_sections`` convert between that text
and the per-section fields the enrichment schemas use.
"""

from collections.abc import Iterable, Mapping
import re
from typing import Any
import unicodedata

from gemini_guard.comparison.chunking import truncate_text

SECTION_TITLES = (
    ("mito", "Mito"),
    ("historia", "Historia"),
    ("versiones", "Versiones"),
    ("leccion", "Lección"),
    ("similitudes", "Similitudes"),
)

# Normalized heading line, leading article and colon removed
_HEADINGS = {
    "mito": "mito",
    "historia": "historia",
    "version": "versiones",
    "versiones": "versiones",
    "leccion": "leccion",
    "similitud": "similitudes",
    "similitudes": "similitudes",
}
_ARTICLES = re.compile(r"^(el|la|los|las)\s+")

__all__ = [
    "SECTION_TITLES",
    "build_content",
    "normalize_focus_keywords",
    "normalize_text",
    "parse_content_sections",
    "section_for_heading",
    "truncate_text",
]


def normalize_text(value: Any) -> str:
    """Trimmed, lowercased, accent-free text with single spaces."""
    decomposed = unicodedata.normalize("NFD", str(value or "").strip().lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.split())


def build_content(sections: Mapping[str, Any]) -> str:
    """Join the non-empty sections under their titles."""
    blocks = []
    for key, title in SECTION_TITLES:
        text = str(sections.get(key) or "").strip()
        if text:
            blocks.append(f"{title}\n{text}")
    return "\n\n".join(blocks)


def parse_content_sections(content: Any) -> dict[str, str]:
    """Split content produced by ``build_content`` back into sections.

    Only a line that is itself a section heading starts a section, so a
    section keeps all of its paragraphs. Text before the first heading is
    dropped; missing sections come back as empty strings.
    """
    collected: dict[str, list[str]] = {key: [] for key, _ in SECTION_TITLES}
    current: str | None = None
    for line in str(content or "").strip().splitlines():
        heading = section_for_heading(line)
        if heading is not None:
            current = heading
        elif current is not None:
            collected[current].append(line)
    return {key: "\n".join(lines).strip() for key, lines in collected.items()}


def section_for_heading(line: str) -> str | None:
    """The section key a heading line names, or None for body text."""
    title = normalize_text(line).rstrip(":").strip()
    return _HEADINGS.get(_ARTICLES.sub("", title))


def normalize_focus_keywords(
    keywords: Iterable[Any], focus_keyword: str | None = None
) -> list[str]:
    """Deduplicated, stripped keywords in first-seen order, focus keyword last."""
    seen: dict[str, None] = {}
    for item in keywords:
        value = str(item or "").strip()
        if value:
            seen.setdefault(value, None)
    if focus_keyword and focus_keyword.strip():
        seen.setdefault(focus_keyword.strip(), None)
    return list(seen)
