"""Chunked corpus comparison."""

from .cache import CandidateCache
from .chunking import build_chunks, truncate_text
from .comparator import CorpusComparator, merge_verdicts

__all__ = [
    "CandidateCache",
    "CorpusComparator",
    "build_chunks",
    "merge_verdicts",
    "truncate_text",
]
