"""Chunked corpus comparison and verdict merging."""

import json

import pytest

from gemini_guard.adapters.mock import MockAdapter
from gemini_guard.comparison import CorpusComparator, build_chunks, merge_verdicts
from gemini_guard.comparison.chunking import project_item, serialized_size
from gemini_guard.constants import MATCH_LIMIT
from gemini_guard.core.types import ModelQueue, SimilarityMatch, SimilarityVerdict
from gemini_guard.exceptions import (
    APIError,
    ExhaustedModelQueueError,
    OutputValidationError,
    UnparseableOutputError,
)
from gemini_guard.resilience import ModelFallbackOrchestrator
from gemini_guard.schemas import SIMILARITY_CHECK

pytestmark = pytest.mark.unit

QUEUE = ModelQueue(("model-a", "model-b"))


def match(slug, confidence):
    return SimilarityMatch(title=slug, identifier=slug, confidence=confidence)


def verdict(confidence, *matches, model="model-a", chunks=1):
    return SimilarityVerdict(
        confidence=confidence, matches=tuple(matches), model_used=model, chunks=chunks
    )


class ChunkAwareAdapter(MockAdapter):
    """Answers by the id of the first item in the chunk, in any call order."""

    def __init__(self, responses_by_first_id, default=""):
        super().__init__()
        self.responses_by_first_id = responses_by_first_id
        self.default = default

    def generate_text(self, model, request):
        self.text_calls.append((model, request))
        first_id = request.input["items"][0]["id"]
        response = self.responses_by_first_id.get(first_id, self.default)
        if isinstance(response, BaseException):
            raise response
        return response


def make_comparator(adapter, **kwargs):
    return CorpusComparator(ModelFallbackOrchestrator(adapter), QUEUE, **kwargs)


class TestMergeVerdicts:
    def test_strictly_higher_confidence_replaces(self):
        current = verdict(60, match("a", 60), match("b", 40))
        candidate = verdict(70, match("c", 70), model="model-b")

        merged = merge_verdicts(current, candidate)

        assert merged.confidence == 70
        assert merged.matches == (match("c", 70),)
        assert merged.model_used == "model-b"
        assert merged.chunks == 2

    def test_replacing_verdict_matches_are_sorted_and_capped(self):
        scores = [10, 90, 20, 80, 30, 70, 40, 60]
        candidate = verdict(50, *(match(f"m-{s}", s) for s in scores))

        merged = merge_verdicts(verdict(20, match("a", 20)), candidate, limit=5)

        assert merged.confidence == 50
        assert [m.confidence for m in merged.matches] == [90, 80, 70, 60, 40]

    def test_tie_keeps_earlier_verdict_and_merges_matches(self):
        current = verdict(60, match("a", 60), match("b", 40))
        candidate = verdict(60, match("c", 55), model="model-b")

        merged = merge_verdicts(current, candidate)

        assert merged.confidence == 60
        assert merged.model_used == "model-a"
        assert [m.identifier for m in merged.matches] == ["a", "c", "b"]

    def test_lower_confidence_contributes_matches_up_to_the_limit(self):
        current = verdict(80, *(match(f"cur-{i}", 80 - i) for i in range(4)))
        candidate = verdict(30, match("new-1", 79.5), match("new-2", 10))

        merged = merge_verdicts(current, candidate, limit=5)

        assert merged.confidence == 80
        assert [m.identifier for m in merged.matches] == [
            "cur-0",
            "new-1",
            "cur-1",
            "cur-2",
            "cur-3",
        ]

    def test_equal_match_confidence_keeps_earlier_first(self):
        current = verdict(50, match("a", 50))

        merged = merge_verdicts(current, verdict(10, match("b", 50)))

        assert [m.identifier for m in merged.matches] == ["a", "b"]

    def test_merging_into_empty_verdict(self):
        merged = merge_verdicts(SimilarityVerdict(), verdict(0, match("a", 5)))

        assert merged.confidence == 0
        assert merged.matches == (match("a", 5),)
        assert merged.model_used is None
        assert merged.chunks == 1


class TestFindSimilar:
    def test_empty_corpus_makes_no_calls(self):
        adapter = MockAdapter()

        result = make_comparator(adapter).find_similar("La Llorona", [])

        assert result == SimilarityVerdict()
        assert adapter.text_calls == []

    def test_single_chunk_verdict(self, similarity_payload, corpus_factory):
        adapter = MockAdapter(
            {"model-a": similarity_payload(72, ("mito-1", 72), ("mito-2", 30))}
        )

        result = make_comparator(adapter).find_similar("La Llorona", corpus_factory(3))

        assert result.confidence == 72
        assert result.best_match.identifier == "mito-1"
        assert result.best_match.title == "Mito 1"
        assert result.model_used == "model-a"
        assert result.chunks == 1
        assert result.is_duplicate(65) is True
        assert result.is_duplicate(72.5) is False

    def test_single_chunk_matches_are_sorted_and_capped(
        self, similarity_payload, corpus_factory
    ):
        scores = [10, 90, 20, 80, 30, 70, 40, 60]
        adapter = MockAdapter(
            {"model-a": similarity_payload(50, *((f"m-{s}", s) for s in scores))}
        )

        result = make_comparator(adapter, match_limit=5).find_similar(
            "Mito", corpus_factory(3)
        )

        assert [m.confidence for m in result.matches] == [90, 80, 70, 60, 40]

    def test_request_carries_query_and_projected_items(
        self, similarity_payload, corpus_factory
    ):
        adapter = MockAdapter({"model-a": similarity_payload(0)})

        make_comparator(adapter).find_similar("El Mohan", corpus_factory(2))

        _, request = adapter.text_calls[0]
        assert request.schema is SIMILARITY_CHECK
        assert request.input["query"] == "El Mohan"
        assert [item["slug"] for item in request.input["items"]] == [
            "mito-0",
            "mito-1",
        ]

    def test_large_corpus_is_checked_chunk_by_chunk(
        self, similarity_payload, corpus_factory
    ):
        corpus = corpus_factory(250)
        chunks = build_chunks(corpus)
        assert len(chunks) > 2
        best_chunk = chunks[1]
        best_slug = best_chunk.items[0]["slug"]
        responses = {chunk.items[0]["id"]: similarity_payload(10) for chunk in chunks}
        responses[best_chunk.items[0]["id"]] = similarity_payload(
            90, (best_slug, 90)
        )
        adapter = ChunkAwareAdapter(responses)

        result = make_comparator(adapter).find_similar("Mito", corpus)

        assert len(adapter.text_calls) == len(chunks)
        assert result.confidence == 90
        assert result.best_match.identifier == best_slug
        assert result.chunks == len(chunks)

    def test_fifty_items_per_chunk_means_five_calls(
        self, similarity_payload, corpus_factory
    ):
        corpus = [
            dict(
                item,
                id=f"{i:03d}",
                title=f"Mito {i:03d}",
                slug=f"mito-{i:03d}",
                excerpt="Relato de la tradicion oral.",
            )
            for i, item in enumerate(corpus_factory(250))
        ]
        budget = 50 * serialized_size(project_item(corpus[0]))
        responses = {
            f"{start:03d}": similarity_payload(
                90 - index * 10,
                *(
                    (f"mito-{start + offset:03d}", 80 - index - offset * 10)
                    for offset in range(3)
                ),
            )
            for index, start in enumerate(range(0, 250, 50))
        }
        adapter = ChunkAwareAdapter(responses)

        result = make_comparator(adapter, max_chunk_chars=budget).find_similar(
            "Mito", corpus
        )

        assert len(adapter.text_calls) == 5
        assert result.chunks == 5
        assert result.confidence == 90
        scores = [m.confidence for m in result.matches]
        assert len(scores) == MATCH_LIMIT
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 80

    def test_empty_chunk_output_is_skipped(self, similarity_payload, corpus_factory):
        corpus = corpus_factory(30)
        chunks = build_chunks(corpus, 3000)
        responses = {chunk.items[0]["id"]: "" for chunk in chunks}
        responses[chunks[-1].items[0]["id"]] = similarity_payload(40, ("mito-29", 40))
        adapter = ChunkAwareAdapter(responses)

        result = make_comparator(adapter, max_chunk_chars=3000).find_similar(
            "Mito", corpus
        )

        assert result.confidence == 40
        assert result.chunks == 1
        assert len(adapter.text_calls) == len(chunks)

    def test_unparseable_chunk_aborts_the_comparison(
        self, similarity_payload, corpus_factory
    ):
        corpus = corpus_factory(30)
        chunks = build_chunks(corpus, 3000)
        adapter = MockAdapter(
            {"model-a": [similarity_payload(10), "no puedo responder eso"]}
        )

        with pytest.raises(UnparseableOutputError):
            make_comparator(adapter, max_chunk_chars=3000).find_similar("Mito", corpus)

        assert len(chunks) > 2
        assert len(adapter.text_calls) == 2

    def test_invalid_chunk_output_aborts_the_comparison(self, corpus_factory):
        adapter = MockAdapter({"model-a": json.dumps({"matches": "none"})})

        with pytest.raises(OutputValidationError):
            make_comparator(adapter).find_similar("Mito", corpus_factory(2))

    def test_each_chunk_gets_model_fallback(
        self, similarity_payload, access_error, corpus_factory
    ):
        adapter = MockAdapter(
            {
                "model-a": [access_error("model-a"), similarity_payload(20)],
                "model-b": similarity_payload(50, ("mito-0", 50)),
            }
        )

        result = make_comparator(adapter, max_chunk_chars=3000).find_similar(
            "Mito", corpus_factory(8)
        )

        models = [model for model, _ in adapter.text_calls]
        assert models[:3] == ["model-a", "model-b", "model-a"]
        assert result.confidence == 50
        assert result.model_used == "model-b"

    def test_exhausted_queue_aborts_the_comparison(self, access_error, corpus_factory):
        adapter = MockAdapter(
            {"model-a": access_error("model-a"), "model-b": access_error("model-b")}
        )

        with pytest.raises(ExhaustedModelQueueError):
            make_comparator(adapter).find_similar("Mito", corpus_factory(2))


class TestAsyncFindSimilar:
    @pytest.mark.asyncio
    async def test_concurrent_result_equals_sequential(
        self, similarity_payload, corpus_factory
    ):
        corpus = corpus_factory(250)
        chunks = build_chunks(corpus)
        responses = {
            chunk.items[0]["id"]: similarity_payload(
                (chunk.index * 37) % 100,
                (chunk.items[0]["slug"], (chunk.index * 37) % 100),
                (chunk.items[-1]["slug"], (chunk.index * 11) % 100),
            )
            for chunk in chunks
        }

        sequential = make_comparator(ChunkAwareAdapter(responses)).find_similar(
            "Mito", corpus
        )
        concurrent = await make_comparator(
            ChunkAwareAdapter(responses)
        ).afind_similar("Mito", corpus)

        assert concurrent == sequential
        assert concurrent.chunks == len(chunks)

    @pytest.mark.asyncio
    async def test_concurrent_failure_raises_the_original_error(
        self, similarity_payload, corpus_factory
    ):
        corpus = corpus_factory(30)
        chunks = build_chunks(corpus, 3000)
        responses = {chunk.items[0]["id"]: similarity_payload(10) for chunk in chunks}
        responses[chunks[1].items[0]["id"]] = "sin json"
        comparator = make_comparator(
            ChunkAwareAdapter(responses), max_chunk_chars=3000
        )

        with pytest.raises(UnparseableOutputError):
            await comparator.afind_similar("Mito", corpus)

    @pytest.mark.asyncio
    async def test_concurrent_empty_corpus(self):
        result = await make_comparator(MockAdapter()).afind_similar("Mito", [])

        assert result == SimilarityVerdict()

    @pytest.mark.asyncio
    async def test_failed_chunk_call_is_not_wrapped_in_a_group(
        self, similarity_payload, outage_error, corpus_factory
    ):
        corpus = corpus_factory(30)
        chunks = build_chunks(corpus, 3000)
        responses = {chunk.items[0]["id"]: similarity_payload(10) for chunk in chunks}
        responses[chunks[2].items[0]["id"]] = outage_error()
        comparator = make_comparator(
            ChunkAwareAdapter(responses), max_chunk_chars=3000
        )

        with pytest.raises(APIError, match="Service unavailable"):
            await comparator.afind_similar("Mito", corpus)
