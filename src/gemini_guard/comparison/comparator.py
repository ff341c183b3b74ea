"""Chunked similarity search over a corpus that does not fit one request.

The corpus is packed into size-bounded chunks (see ``chunking``), each chunk
is checked against the query with one orchestrated call, and the per-chunk
verdicts are folded into a single ``SimilarityVerdict`` with
``merge_verdicts``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
import logging
from typing import TYPE_CHECKING, Any

from gemini_guard.comparison.chunking import build_chunks
from gemini_guard.constants import MATCH_LIMIT, MAX_CHECK_CHUNK_CHARS
from gemini_guard.core.types import SimilarityMatch, SimilarityVerdict
from gemini_guard.prompts import similarity_request
from gemini_guard.schemas import SIMILARITY_CHECK
from gemini_guard.telemetry import TelemetryContext

if TYPE_CHECKING:
    from gemini_guard.core.types import CorpusChunk, Generation, ModelQueue
    from gemini_guard.resilience.model_fallback import ModelFallbackOrchestrator
    from gemini_guard.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


def merge_verdicts(
    current: SimilarityVerdict,
    candidate: SimilarityVerdict,
    limit: int = MATCH_LIMIT,
) -> SimilarityVerdict:
    """Fold one chunk's verdict into the running verdict.

    A strictly higher confidence replaces the running verdict outright. On a
    tie or lower confidence the candidate's matches are merged into the
    running list and the earlier verdict stays the base. Either way the
    matches come back sorted by descending confidence and capped at ``limit``.
    """
    chunks = current.chunks + candidate.chunks
    if candidate.confidence > current.confidence:
        return SimilarityVerdict(
            confidence=candidate.confidence,
            matches=_ranked(candidate.matches, limit),
            model_used=candidate.model_used,
            chunks=chunks,
        )
    return SimilarityVerdict(
        confidence=current.confidence,
        matches=_ranked((*current.matches, *candidate.matches), limit),
        model_used=current.model_used,
        chunks=chunks,
    )


def _ranked(
    matches: Iterable[SimilarityMatch], limit: int
) -> tuple[SimilarityMatch, ...]:
    ordered = sorted(matches, key=lambda match: match.confidence, reverse=True)
    return tuple(ordered[:limit])


class CorpusComparator:
    """Asks the service whether a query already exists in a corpus."""

    def __init__(
        self,
        orchestrator: ModelFallbackOrchestrator,
        queue: ModelQueue,
        *,
        max_chunk_chars: int = MAX_CHECK_CHUNK_CHARS,
        match_limit: int = MATCH_LIMIT,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.queue = queue
        self.max_chunk_chars = max_chunk_chars
        self.match_limit = match_limit
        self.tele = telemetry or TelemetryContext()

    def find_similar(
        self, query: str, corpus: Iterable[Mapping[str, Any]]
    ) -> SimilarityVerdict:
        """Check every chunk in order and return the merged verdict.

        Any terminal failure (exhausted queue, unparseable or invalid output,
        provider error) aborts the comparison.
        """
        chunks = build_chunks(corpus, self.max_chunk_chars)
        log.debug("Comparing '%s' against %d chunk(s).", query, len(chunks))
        verdict = SimilarityVerdict()
        with self.tele("comparator.find_similar", chunks=len(chunks)):
            for chunk in chunks:
                request = similarity_request(query, chunk)
                generation = self.orchestrator.generate(request, self.queue)
                verdict = self._fold(verdict, chunk, generation)
        return verdict

    async def afind_similar(
        self, query: str, corpus: Iterable[Mapping[str, Any]]
    ) -> SimilarityVerdict:
        """Concurrent ``find_similar``; the result matches the sequential one.

        Chunk calls run in a task group, so the first terminal failure
        cancels the calls still in flight. Results are merged in chunk order.
        """
        chunks = build_chunks(corpus, self.max_chunk_chars)
        log.debug(
            "Comparing '%s' against %d chunk(s) concurrently.", query, len(chunks)
        )
        with self.tele("comparator.afind_similar", chunks=len(chunks)):
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [
                        group.create_task(
                            self.orchestrator.agenerate(
                                similarity_request(query, chunk), self.queue
                            )
                        )
                        for chunk in chunks
                    ]
            except ExceptionGroup as group_error:
                raise group_error.exceptions[0]  # noqa: B904

            verdict = SimilarityVerdict()
            for chunk, task in zip(chunks, tasks, strict=True):
                verdict = self._fold(verdict, chunk, task.result())
        return verdict

    def _fold(
        self,
        verdict: SimilarityVerdict,
        chunk: CorpusChunk,
        generation: Generation[str],
    ) -> SimilarityVerdict:
        self.tele.count("comparator.chunks")
        if not generation.value or not generation.value.strip():
            log.debug("Chunk %d returned no text; skipping.", chunk.index)
            return verdict

        recovered = self.orchestrator.recover_output(generation.value, SIMILARITY_CHECK)
        parsed = recovered.value
        candidate = SimilarityVerdict(
            confidence=float(parsed.confidence),
            matches=tuple(
                SimilarityMatch.from_payload(match.model_dump())
                for match in parsed.matches
            ),
            model_used=generation.model_used,
            chunks=1,
        )
        return merge_verdicts(verdict, candidate, self.match_limit)
