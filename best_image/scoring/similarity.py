# best_image/scoring/similarity.py
# Responsibility: String similarity used by the scorer, and the dependency handle passed to user hooks.

from typing import Callable, NamedTuple, Optional
from urllib.parse import urlparse

from rapidfuzz import fuzz

SimilarityFn = Callable[[str, str], float]


def compare_two_strings(first: Optional[str], second: Optional[str]) -> float:
    """Returns a similarity between 0 (unrelated) and 1 (identical)."""
    first = first or ""
    second = second or ""
    if first == second:
        return 1.0
    if not first or not second:
        return 0.0
    return fuzz.ratio(first, second) / 100.0


class ScoreDeps(NamedTuple):
    """Helpers handed to scoring hooks so they can run their own comparisons."""

    string_similarity: SimilarityFn
    urlparse: Callable


DEFAULT_DEPS = ScoreDeps(string_similarity=compare_two_strings, urlparse=urlparse)
