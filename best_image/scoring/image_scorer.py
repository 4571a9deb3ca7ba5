# best_image/scoring/image_scorer.py
# Responsibility: Rank image candidates by content relevance and, once validated, by pixel size.

import math
from typing import Callable, List, Optional, Sequence
from urllib.parse import urlparse

from best_image.config.settings import ScoreConfig, TitleFactors
from best_image.crawler.candidate import ImageCandidate
from best_image.scoring.similarity import DEFAULT_DEPS, ScoreDeps
from best_image.services.logr import LOGR

# hook(candidates, deps, size_phase)
ScoreHook = Callable[[List[ImageCandidate], ScoreDeps, bool], None]

JPG_EXTENSIONS = ("ashx", "jpg", "jpeg")


class ImageScorer:
    """
    Heuristic scorer for image candidates.

    Content phase (find_best_images): title/query similarity, meta bonus,
    good/bad words and format bonus, normalized so the best item is 1.0.
    Size phase (consolidate_and_size_rank + call_sizing_function): a
    dimension quality score added on top of the content score.

    Both phases accept an optional hook that adjusts candidates in place:
        def hook(candidates, deps, size_phase):
            ...
    """

    def __init__(self, config: Optional[ScoreConfig] = None, deps: ScoreDeps = DEFAULT_DEPS):
        self.config = config or ScoreConfig()
        self.deps = deps

    # ---------------------------
    # Content phase
    # ---------------------------
    def find_best_images(
        self,
        candidates: List[ImageCandidate],
        score_hook: Optional[ScoreHook] = None,
    ) -> List[ImageCandidate]:
        """
        Scores, sorts (descending) and normalizes the candidates.

        Returns:
            List[ImageCandidate]: The same objects, sorted by score.
        """
        for candidate in candidates:
            candidate.score = 0.0
            if is_valid_src(candidate.src):
                candidate.score = self.preference_score(candidate)

        candidates = sort_by_score(candidates)
        normalize_scores(candidates)

        if score_hook:
            score_hook(candidates, self.deps, False)
            # don't count on the hook to keep the order
            candidates = sort_by_score(candidates)
            normalize_scores(candidates)

        LOGR.debug(f"[Scorer] Resulting image array: {[(c.src, round(c.score, 4)) for c in candidates]}")
        return candidates

    def preference_score(self, candidate: ImageCandidate) -> float:
        """Raw (un-normalized) content score; records the breakdown on the candidate."""
        cfg = self.config
        src = candidate.src or ""
        score = 0.0
        is_data = "data:image" in src

        candidate.title_score = candidate.query_score = 0.0

        if not is_data:
            if candidate.doc_title:
                score += self.title_score(candidate, candidate.doc_title, cfg.doc_title_factors)
                candidate.title_score = score
            if candidate.query:
                score += self.title_score(candidate, candidate.query, cfg.query_factors)
                candidate.query_score = score - candidate.title_score

        if candidate.is_meta:
            score += cfg.is_meta

        # good words stack: src, class and title are each checked on their own
        before = score
        if not is_data:
            score += self.check_good_words(src)
        score += self.check_good_words(candidate.css_class)
        score += self.check_good_words(candidate.title)
        candidate.good_words = score - before

        before = score
        if not is_data:
            score += self.check_bad_words(src)
        candidate.bad_words = score - before

        before = score
        score += self.check_filename_bad_words(src)
        candidate.bad_fname_words = score - before

        score += self.extension_score(src)
        return score

    def title_score(self, candidate: ImageCandidate, title: str, factors: TitleFactors) -> float:
        """
        Similarity of the candidate to a reference text (document title or query).

        The image title (or alt text) is compared when present, otherwise the
        directory part of the url is. The filename is always compared.
        """
        similarity = self.deps.string_similarity
        fname, pre_path = split_filename(candidate.src or "")

        if candidate.title:
            add_score = factors.img_title * similarity(candidate.title, title)
        elif candidate.alt:
            add_score = factors.img_title * similarity(candidate.alt, title)
        else:
            add_score = factors.img_src * similarity(pre_path, title)

        add_score += factors.img_fname * similarity(fname, title)
        return add_score

    def check_good_words(self, text: Optional[str]) -> float:
        if not text:
            return 0.0
        lowered = text.lower()
        if any(word in lowered for word in self.config.good_words):
            return self.config.good_word_match
        return 0.0

    def check_bad_words(self, text: Optional[str]) -> float:
        if not text:
            return 0.0
        lowered = text.lower()
        if any(word in lowered for word in self.config.bad_words):
            return self.config.bad_word_match
        return 0.0

    def check_filename_bad_words(self, src: str) -> float:
        fname = src[src.rfind("/"):].lower() if "/" in src else src.lower()
        if any(word in fname for word in self.config.bad_filenames):
            return self.config.bad_word_match_fname
        return 0.0

    def extension_score(self, src: str) -> float:
        cfg = self.config
        if src.startswith("data:image"):
            return cfg.is_data_image
        if has_extension(src, JPG_EXTENSIONS):
            return cfg.is_jpg
        if has_extension(src, ("gif",)):
            return cfg.is_gif
        if has_extension(src, ("png",)):
            return cfg.is_png
        return 0.0

    # ---------------------------
    # Size phase
    # ---------------------------
    def consolidate_and_size_rank(self, candidates: Sequence[Optional[ImageCandidate]]) -> List[ImageCandidate]:
        """Drops None placeholders and attaches a size_score to every survivor."""
        survivors = [c for c in candidates if c is not None]
        for candidate in survivors:
            candidate.size_score = self.size_score(candidate)
        return survivors

    def size_score(self, candidate: ImageCandidate) -> float:
        """
        Returns 1 - (ratio penalty + surface penalty). Candidates without
        usable dimensions score 0.
        """
        dims = candidate.dimensions
        if not dims or not dims.width or not dims.height:
            return 0.0

        size = self.config.size
        x, y = dims.width, dims.height
        ideal_ratio = size.ideal_width / size.ideal_height

        ratio = x / (y + 0.001)
        rdiff = abs(ideal_ratio - ratio) * size.ratio_weight

        surface_area = x * y
        sdiff_raw = surface_area - (size.ideal_width * size.ideal_height)
        sdiff = 0.0
        if sdiff_raw > 0:
            sdiff = math.log(abs(sdiff_raw)) * 0.01 * size.larger_weight
        elif sdiff_raw < 0:
            sdiff = math.log(abs(sdiff_raw)) * 0.01 * size.smaller_weight

        candidate.details.update({
            "surface_area": surface_area,
            "sdiff_raw": sdiff_raw,
            "rdiff": rdiff,
            "sdiff": sdiff,
            "ideal_ratio": ideal_ratio,
            "pre_size_score": candidate.score,
        })
        return 1 - (rdiff + sdiff)

    def call_sizing_function(
        self,
        score_hook: Optional[ScoreHook],
        candidates: List[ImageCandidate],
    ) -> List[ImageCandidate]:
        """Runs the size-phase hook, then folds size_score into score."""
        if score_hook:
            score_hook(candidates, self.deps, True)
        return adjust_scores_with_size(candidates)


# -------------------------------
# Helpers
# -------------------------------
def is_valid_src(src: Optional[str]) -> bool:
    """Some sites emit empty or blank src attributes; data URIs are fine."""
    if not src:
        return False
    if src.startswith("data:"):
        return True
    return len(src.strip()) > 0


def has_extension(filename: str, extensions: Sequence[str]) -> bool:
    lowered = filename.lower()
    return any(lowered.endswith(ext if ext.startswith(".") else "." + ext) for ext in extensions)


def split_filename(src: str):
    """Returns (filename, directory) of the url path; filename keeps its leading slash."""
    try:
        pathname = urlparse(src).path
    except ValueError:
        pathname = ""
    if not pathname:
        return "", ""
    index = pathname.rfind("/")
    if index < 0:
        return pathname, ""
    return pathname[index:], pathname[:index]


def sort_by_score(candidates: List[ImageCandidate]) -> List[ImageCandidate]:
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def normalize_scores(candidates: Sequence[ImageCandidate]) -> None:
    """
    Rescales scores so the best one is exactly 1.0.

    With a positive maximum every score is divided by it. When no score is
    positive, scores are shifted up by (1 - max) instead, which keeps the
    order and the gaps between candidates.
    """
    if not candidates:
        return
    top = max(c.score for c in candidates)
    if top > 0:
        for c in candidates:
            c.score = c.score / top
    else:
        for c in candidates:
            c.score = c.score + (1.0 - top)


def adjust_scores_with_size(candidates: List[ImageCandidate]) -> List[ImageCandidate]:
    for c in candidates:
        c.score += c.size_score or 0.0
    normalize_scores(candidates)
    return sort_by_score(candidates)
