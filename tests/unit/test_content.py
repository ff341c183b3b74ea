import pytest

from gemini_guard.content import (
    build_content,
    normalize_focus_keywords,
    normalize_text,
    parse_content_sections,
    section_for_heading,
)

pytestmark = pytest.mark.unit


def test_normalize_text():
    assert normalize_text("  La   Madre  MONTE ") == "la madre monte"
    assert normalize_text("Lección Pacífica") == "leccion pacifica"
    assert normalize_text(None) == ""


def test_build_content_skips_empty_sections():
    content = build_content(
        {"mito": " El Mohan vive en el rio. ", "historia": "", "leccion": "Respeto."}
    )

    assert content == "Mito\nEl Mohan vive en el rio.\n\nLección\nRespeto."


def test_parse_content_sections_reads_built_content():
    sections = {
        "mito": "Texto del mito.",
        "historia": "Origen colonial.",
        "versiones": "Version del Tolima.",
        "leccion": "Cuidar el rio.",
        "similitudes": "Se parece a la Llorona.",
    }

    assert parse_content_sections(build_content(sections)) == sections


def test_parse_content_sections_tolerates_heading_variants():
    content = "Introduccion\n\nMITO:\nUno\n\nLas versiones\nDos"

    sections = parse_content_sections(content)

    assert sections["mito"] == "Uno"
    assert sections["versiones"] == "Dos"
    assert sections["historia"] == ""


def test_multi_paragraph_sections_are_kept_whole():
    content = (
        "Mito\nPrimer parrafo.\n\nEl mito cuenta que el Mohan canta.\n\n"
        "Historia\nOrigen colonial.\n\nDocumentado en 1950."
    )

    sections = parse_content_sections(content)

    assert sections["mito"] == (
        "Primer parrafo.\n\nEl mito cuenta que el Mohan canta."
    )
    assert sections["historia"] == "Origen colonial.\n\nDocumentado en 1950."


@pytest.mark.parametrize(
    ("line", "key"),
    [
        ("Lección", "leccion"),
        ("  la leccion: ", "leccion"),
        ("Similitudes", "similitudes"),
        ("El mito del Mohan", None),
        ("", None),
    ],
)
def test_section_for_heading(line, key):
    assert section_for_heading(line) == key


def test_parse_empty_content():
    assert set(parse_content_sections("").values()) == {""}


def test_normalize_focus_keywords():
    keywords = normalize_focus_keywords(
        [" mohan ", "", None, "rio", "mohan"], focus_keyword="leyenda"
    )

    assert keywords == ["mohan", "rio", "leyenda"]


def test_focus_keyword_already_present_is_not_duplicated():
    assert normalize_focus_keywords(["rio"], "rio ") == ["rio"]
