# best_image/api.py
# Responsibility: Process level entry points returning (error, result) pairs.

from functools import lru_cache
from typing import Any, Mapping, Optional, Tuple

from best_image.errors import BestImageError
from best_image.scoring.image_scorer import ScoreHook
from best_image.services.best_image_service import BestImageService, DebugResult
from best_image.services.logr import LOGR, configure

__all__ = [
    "configure",
    "set_score_config",
    "get_best_image",
    "get_best_image_with_hook",
    "get_best_image_from_html",
    "get_best_image_debug",
    "get_default_service",
]


@lru_cache()
def get_default_service() -> BestImageService:
    """Dependency injection provider for the shared BestImageService."""
    return BestImageService()


def set_score_config(overrides: Optional[Mapping[str, Any]]) -> bool:
    return get_default_service().set_score_config(overrides)


async def get_best_image(url: str, query: Optional[str] = None) -> Tuple[Optional[BestImageError], Optional[str]]:
    return await get_best_image_with_hook(url, query, None)


async def get_best_image_with_hook(
    url: str,
    query: Optional[str],
    score_hook: Optional[ScoreHook],
) -> Tuple[Optional[BestImageError], Optional[str]]:
    try:
        return None, await get_default_service().get_best_image(url, query, score_hook)
    except BestImageError as e:
        LOGR.debug(f"[API] Lookup failed for {url}: {e.message}")
        return e, None


async def get_best_image_from_html(
    url: str,
    query: Optional[str],
    html: str,
    score_hook: Optional[ScoreHook] = None,
) -> Tuple[Optional[BestImageError], Optional[str]]:
    try:
        return None, await get_default_service().get_best_image_from_html(url, query, html, score_hook)
    except BestImageError as e:
        LOGR.debug(f"[API] Lookup failed for {url}: {e.message}")
        return e, None


async def get_best_image_debug(
    url: str,
    query: Optional[str] = None,
    score_hook: Optional[ScoreHook] = None,
) -> Tuple[Optional[BestImageError], DebugResult]:
    result = await get_default_service().get_best_image_debug(url, query, score_hook)
    return result.error, result
