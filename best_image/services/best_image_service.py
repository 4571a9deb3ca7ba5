# best_image/services/best_image_service.py
# Responsibility: Orchestrates the pipeline (Fetch -> Extract -> Score -> Validate in batches -> Size rank).

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from best_image.config.settings import ScoreConfig, merge_score_config, settings
from best_image.crawler.candidate import ImageCandidate
from best_image.crawler.fetcher import DocumentFetcher
from best_image.crawler.parser import CandidateExtractor
from best_image.crawler.url_resolver import resolve, resolve_from_root
from best_image.errors import (
    BestImageError,
    FetchError,
    InvalidUrlError,
    NoImagesFoundError,
    NoValidImageError,
)
from best_image.scoring.image_scorer import ImageScorer, ScoreHook
from best_image.services.logr import LOGR
from best_image.validator.image_validator import ImageValidator


@dataclass
class DebugResult:
    """Winning url plus every intermediate candidate list of a debug lookup."""

    image_url: Optional[str]
    debug_info: Dict[str, Any] = field(default_factory=dict)
    error: Optional[BestImageError] = None


class BestImageService:
    """
    Main service class for picking the representative image of a page.
    Integrates the fetcher, extractor, scorer and validator.
    """

    def __init__(
        self,
        score_config: Optional[ScoreConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        batch_size: Optional[int] = None,
        validator: Optional[ImageValidator] = None,
    ):
        self.fetcher = DocumentFetcher(transport=transport)
        self.extractor = CandidateExtractor(fetcher=self.fetcher)
        self.scorer = ImageScorer(score_config)
        self.validator = validator or ImageValidator(transport=transport)
        self.batch_size = batch_size or settings.SELECTOR.BATCH_SIZE

    def set_score_config(self, overrides: Optional[Mapping[str, Any]]) -> bool:
        """Merges overrides onto the default weights. Returns False when there is nothing to apply."""
        if not overrides:
            return False
        self.scorer.config = merge_score_config(ScoreConfig(), overrides)
        return True

    # ---------------------------
    # Public lookups
    # ---------------------------
    async def get_best_image(
        self,
        url: str,
        query: Optional[str] = None,
        score_hook: Optional[ScoreHook] = None,
    ) -> str:
        """
        Loads the page and returns the address of its best image.

        Raises:
            DocumentFetchError: The page could not be loaded.
            NoImagesFoundError: The page has no image candidates.
            NoValidImageError: No candidate could be validated.
        """
        query = query or ""
        LOGR.debug(f"[Service] Get images for {url}:{query}")
        html = await self.fetcher.fetch_document(url)
        return await self.get_best_image_from_html(url, query, html, score_hook)

    async def get_best_image_from_html(
        self,
        url: str,
        query: Optional[str],
        html: str,
        score_hook: Optional[ScoreHook] = None,
        debug_info: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Same as get_best_image, for a document that was already retrieved."""
        candidates = await self.extractor.extract_from_html(url, html, query or "")
        if debug_info is not None:
            debug_info["raw_image_array"] = [c.to_dict() for c in candidates]

        self.resolve_candidates(url, candidates)
        candidates = self.scorer.find_best_images(candidates, score_hook)
        candidates = dedupe_candidates(candidates)

        if debug_info is not None:
            debug_info["scored_image_array"] = [c.to_dict() for c in candidates]

        if not candidates:
            raise NoImagesFoundError(context={"url": url})

        # debug lookups validate everything in one batch
        batch_size = len(candidates) if debug_info is not None else self.batch_size
        return await self.find_valid_image(url, candidates, score_hook, batch_size, debug_info)

    async def get_best_image_debug(
        self,
        url: str,
        query: Optional[str] = None,
        score_hook: Optional[ScoreHook] = None,
        html: Optional[str] = None,
    ) -> DebugResult:
        """
        Runs a lookup with batching disabled and keeps every intermediate
        candidate list. Errors are reported on the result instead of raised.
        """
        debug_info: Dict[str, Any] = {"host_url": url, "query": query or ""}
        result = DebugResult(image_url=None, debug_info=debug_info)
        try:
            if html is None:
                html = await self.fetcher.fetch_document(url)
            result.image_url = await self.get_best_image_from_html(url, query, html, score_hook, debug_info)
        except BestImageError as e:
            debug_info["error"] = e.message
            result.error = e
        return result

    # ---------------------------
    # Pipeline steps
    # ---------------------------
    def resolve_candidates(self, url: str, candidates: List[ImageCandidate]) -> None:
        """Makes every candidate address absolute; unresolvable ones become empty."""
        for candidate in candidates:
            candidate.raw_src = candidate.src
            if not candidate.src:
                candidate.src = ""
                continue
            try:
                candidate.src = resolve(url, candidate.src)
            except InvalidUrlError as e:
                LOGR.debug(f"[Service] {e}")
                candidate.src = ""

    async def find_valid_image(
        self,
        url: str,
        candidates: List[ImageCandidate],
        score_hook: Optional[ScoreHook] = None,
        batch_size: Optional[int] = None,
        debug_info: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Validates the ranked candidates one batch at a time and returns the
        best survivor of the first batch that has any. Batches run strictly
        one after another, which caps concurrent image fetches at batch_size.

        Raises:
            NoValidImageError: Every batch came back empty.
        """
        batch_size = batch_size or self.batch_size

        for start in range(0, len(candidates), batch_size):
            batch = candidates[start:start + batch_size]
            checked = await asyncio.gather(*(self.check_candidate(url, c) for c in batch))

            survivors = self.scorer.consolidate_and_size_rank(checked)
            survivors = self.scorer.call_sizing_function(score_hook, survivors)

            if survivors:
                if debug_info is not None:
                    debug_info["size_scored_image_array"] = [c.to_dict() for c in survivors]
                LOGR.info(f"[Service] Best image for {url}: {survivors[0].src}")
                return survivors[0].src

            LOGR.debug(f"[Service] No valid image in batch starting at {start}, trying next batch")

        raise NoValidImageError(context={"url": url})

    async def check_candidate(self, url: str, candidate: ImageCandidate) -> Optional[ImageCandidate]:
        """
        Returns the candidate with its dimensions, or None when it does not
        load. A path-relative reference that fails gets one retry resolved
        from the site root.
        """
        try:
            candidate.dimensions = await self.validator.validate(candidate.src)
            return candidate
        except (FetchError, InvalidUrlError) as e:
            LOGR.debug(f"[Service] Dropping {candidate.src}: {e}")

        try:
            fallback = resolve_from_root(url, candidate.raw_src)
        except InvalidUrlError:
            fallback = None
        if not fallback or fallback == candidate.src:
            return None

        LOGR.debug(f"[Service] URL lookup failed, changing to: {fallback}")
        try:
            candidate.dimensions = await self.validator.validate(fallback)
        except (FetchError, InvalidUrlError) as e:
            LOGR.debug(f"[Service] Dropping {fallback}: {e}")
            return None
        candidate.src = fallback
        return candidate


def dedupe_candidates(candidates: List[ImageCandidate]) -> List[ImageCandidate]:
    """Keeps the first candidate for each address."""
    seen = set()
    unique: List[ImageCandidate] = []
    for candidate in candidates:
        if candidate.src in seen:
            continue
        seen.add(candidate.src)
        unique.append(candidate)
    return unique
