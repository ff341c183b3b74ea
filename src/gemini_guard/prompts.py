"""Request builders for each call the editorial pipeline makes.

Instructions are in Spanish (es-CO), the language of the corpus. The JSON
shape is enforced through the request schema; the instructions only add the
editorial context the schema cannot express.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from gemini_guard.comparison.chunking import truncate_text
from gemini_guard.constants import MAX_ENTRY_CONTENT_CHARS
from gemini_guard.content import parse_content_sections
from gemini_guard.core.types import CorpusChunk, GenerationRequest, RegionCenter
from gemini_guard.schemas import (
    EDITORIAL_ENRICHMENT,
    GEO_LOCATION,
    NEW_EDITORIAL_ENTRY,
    SIMILARITY_CHECK,
)

_JSON_ONLY = (
    "No incluyas razonamiento fuera del JSON. "
    "No uses comillas dobles dentro de strings; si necesitas citar, usa "
    "comillas simples. "
    "Si necesitas saltos de linea dentro de strings, usa \\n."
)

REWRITE_INSTRUCTIONS = (
    "Eres experto en reescribir prompts para imagenes culturales. "
    "Reescribe el prompt para que sea seguro y apropiado, sin violencia grafica "
    "ni contenido sexual. Manten el contexto cultural y editorial. "
    "Devuelve solo el prompt reescrito."
)

SIMILARITY_INSTRUCTIONS = (
    "Eres un bibliotecario editorial. Debes detectar si el tema solicitado ya "
    "existe en la base de datos. Entrega un indice de confianza (0-100) y lista "
    "las entradas mas similares con su razon. No inventes coincidencias. "
    "Devuelve SOLO el JSON solicitado."
)

GEOLOCATION_INSTRUCTIONS = (
    "Eres un investigador geografico especializado en mitologia colombiana. "
    "Determina la ubicacion geografica mas probable de la entrada usando todos "
    "los campos provistos. Si describe una laguna, rio, pueblo o territorio "
    "especifico, entrega sus coordenadas aproximadas en Colombia. Si no hay "
    "suficiente evidencia, usa el centro de la region indicada y marca "
    "used_fallback. Solo si no hay region clara usa el centro de Colombia. "
    "Responde solo en el formato JSON solicitado."
)

ENRICHMENT_INSTRUCTIONS = (
    "Eres un editor investigador de mitologia colombiana. Enriquece el relato "
    "con una redaccion clara, literaria y cuidada, sin perder la oralidad "
    "tradicional. Reune al menos {min_sources} fuentes, selecciona las mas "
    "relevantes y resume en notas editoriales. No inventes datos sin respaldo. "
    "Si hay versiones distintas, comparalas. Manten el texto en espanol de "
    "Colombia. Usa analysis_summary (maximo 120 palabras) para resumir pasos "
    "y decisiones; editorial_notes tiene un maximo de 200 palabras. " + _JSON_ONLY
)

NEW_ENTRY_INSTRUCTIONS = (
    "Eres un editor investigador de mitologia colombiana. Crea una entrada "
    "nueva a partir del tema solicitado. Reune al menos {min_sources} fuentes. "
    "Sigue la estructura editorial: Mito, Historia, Versiones, Leccion, "
    "Similitudes. Incluye descripciones SEO y prompts de imagen horizontal "
    "(16:9) y vertical (9:16). Selecciona la region adecuada usando solo las "
    "regiones entregadas. Si no hay una ubicacion precisa, usa el centro de la "
    "region o de Colombia. " + _JSON_ONLY
)


def rewrite_request(prompt: str) -> GenerationRequest:
    return GenerationRequest(
        instructions=REWRITE_INSTRUCTIONS,
        input=prompt,
        temperature=0.3,
        max_output_tokens=600,
    )


def similarity_request(query: str, chunk: CorpusChunk) -> GenerationRequest:
    return GenerationRequest(
        instructions=SIMILARITY_INSTRUCTIONS,
        input={"query": query, "items": list(chunk.items)},
        schema=SIMILARITY_CHECK,
        temperature=0.2,
        max_output_tokens=800,
    )


def geolocation_request(
    entry: Mapping[str, Any],
    region_center: RegionCenter,
    country_center: RegionCenter,
) -> GenerationRequest:
    return GenerationRequest(
        instructions=GEOLOCATION_INSTRUCTIONS,
        input={
            "entry": dict(entry),
            "region_center": _center_payload(region_center),
            "country_center": _center_payload(country_center),
        },
        schema=GEO_LOCATION,
        temperature=0.2,
        max_output_tokens=800,
    )


def enrichment_request(
    entry: Mapping[str, Any], min_sources: int
) -> GenerationRequest:
    """Enrichment request; stored section fields win over ones parsed from content."""
    parsed = parse_content_sections(entry.get("content"))
    sections = {key: entry.get(key) or text for key, text in parsed.items()}
    return GenerationRequest(
        instructions=ENRICHMENT_INSTRUCTIONS.format(min_sources=min_sources),
        input={
            "entry": {
                **entry,
                "content": truncate_text(
                    entry.get("content"), MAX_ENTRY_CONTENT_CHARS
                ),
            },
            "content_sections": sections,
            "requirement": {"min_sources": min_sources, "language": "es-CO"},
        },
        schema=EDITORIAL_ENRICHMENT,
        temperature=0.4,
        max_output_tokens=6000,
    )


def new_entry_request(
    query: str,
    regions: Sequence[Mapping[str, Any]],
    tags: Sequence[str],
    min_sources: int,
) -> GenerationRequest:
    return GenerationRequest(
        instructions=NEW_ENTRY_INSTRUCTIONS.format(min_sources=min_sources),
        input={
            "query": query,
            "regions": [dict(region) for region in regions],
            "tags": list(tags),
            "requirement": {"min_sources": min_sources, "language": "es-CO"},
        },
        schema=NEW_EDITORIAL_ENTRY,
        temperature=0.5,
        max_output_tokens=7000,
    )


def _center_payload(center: RegionCenter) -> dict[str, Any]:
    return {
        "latitude": center.latitude,
        "longitude": center.longitude,
        "label": center.label,
    }


IMAGE_CONTEXT = (
    "CONTEXTO CULTURAL: Ilustracion editorial de mitologia colombiana con valor "
    "educativo y patrimonial. Sin texto ni logos, sin violencia grafica ni desnudez."
)


def image_prompt(prompt: str) -> str:
    """Wrap an entry's image prompt with the editorial context."""
    return f"{IMAGE_CONTEXT}\n\n{prompt.strip()}"
