import os
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings


class FetchSettings(BaseSettings):
    USER_AGENT: str = os.getenv("BEST_IMAGE_USER_AGENT", "BestImageBot/1.0")
    REQUEST_TIMEOUT: float = 10.0

class ValidatorSettings(BaseSettings):
    TIMEOUT_SECONDS: float = 5.0
    CACHE_TTL_SECONDS: float = 10.0

    # Reported for data: URIs, which are never fetched
    DATA_URI_WIDTH: int = 200
    DATA_URI_HEIGHT: int = 100

class SelectorSettings(BaseSettings):
    BATCH_SIZE: int = 10
    MAX_META_IMAGES: int = 2

class ServerSettings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False

class AppSettings(BaseSettings):
    FETCH: FetchSettings = FetchSettings()
    VALIDATOR: ValidatorSettings = ValidatorSettings()
    SELECTOR: SelectorSettings = SelectorSettings()
    SERVER: ServerSettings = ServerSettings()

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = AppSettings()


# -------------------------------
# Scoring weights
# -------------------------------
class TitleFactors(BaseModel):
    model_config = ConfigDict(extra="ignore")

    img_title: float = 1.0   # image title (or alt) vs. reference text
    img_src: float = 1.0     # url path vs. reference text, when no title/alt
    img_fname: float = 1.0   # url filename vs. reference text


class SizePreference(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ideal_width: int = 200
    ideal_height: int = 100
    ratio_weight: float = 0.35    # aspect ratio mismatch
    smaller_weight: float = 7.0   # surface area below ideal
    larger_weight: float = 0.25   # surface area above ideal


class ScoreConfig(BaseModel):
    """
    Weighting table used by the ImageScorer.
    Instances are immutable in practice; use merge_score_config to derive a new one.
    """
    model_config = ConfigDict(extra="ignore")

    is_meta: float = 10.0
    is_data_image: float = 0.5
    is_jpg: float = 0.5
    is_gif: float = 0.4
    is_png: float = 0.3
    doc_title_factors: TitleFactors = TitleFactors()
    query_factors: TitleFactors = TitleFactors(img_title=6.0, img_src=6.0, img_fname=6.0)
    good_word_match: float = 0.3
    bad_word_match: float = -2.0
    bad_word_match_fname: float = -2.0
    size: SizePreference = SizePreference()
    good_words: List[str] = ["logo", "main"]
    bad_words: List[str] = [
        "spacer", "pixel", "email", "search", "button", "pageview", "phone", "call",
        "amazonlogo", "contact", "favicon", "blank", "question", "placeholder", "bbb", "sprite",
        "spinner", "reviews", "clear", "signup", "rss", "border",
    ]
    bad_filenames: List[str] = [
        "spacer", "pixel", "amazon", "ebay", "btn", "bot", "up", "twitter",
        "facebook", "pinterest", "youtube", "gplus", "google", "favicon",
        "paypal", "mastercard", "visa", "phone", "email", "call", "border",
        "submit", "sprite", "spinner", "1x1", "clear", "signup", "rss", "arrow",
    ]


NESTED_SCORE_BLOCKS = ("doc_title_factors", "query_factors", "size")


def merge_score_config(base: ScoreConfig, overrides: Optional[Mapping[str, Any]]) -> ScoreConfig:
    """
    Returns a new ScoreConfig with overrides applied on top of base.

    Scalars and word lists are replaced outright. The nested blocks
    (factor sets and size preference) are merged field by field, so
    {"size": {"ideal_width": 400}} keeps the other size weights.
    Unknown keys are ignored.

    Args:
        base (ScoreConfig): Configuration to start from.
        overrides (Mapping): Partial configuration.

    Returns:
        ScoreConfig: The merged configuration.
    """
    if not overrides:
        return base

    merged = base.model_dump()
    for key, value in overrides.items():
        if key not in ScoreConfig.model_fields:
            continue
        if key in NESTED_SCORE_BLOCKS and isinstance(value, Mapping):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value

    return ScoreConfig.model_validate(merged)
