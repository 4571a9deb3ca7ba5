"""Records describing discovered images while they move through the pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ImageDimensions:
    """Result of validating an image address."""

    loaded: bool
    width: Optional[int] = None
    height: Optional[int] = None
    image_type: Optional[str] = None
    note: Optional[str] = None


@dataclass
class ImageCandidate:
    """
    One image reference found in a document.

    score and size_score are mutated in place by the scorer and by user
    hooks; the breakdown fields only exist for inspection.
    """

    src: Optional[str]
    title: Optional[str] = None
    css_class: Optional[str] = None
    alt: Optional[str] = None
    is_meta: bool = False
    doc_title: str = ""
    query: Optional[str] = None
    raw_src: Optional[str] = None
    score: float = 0.0
    size_score: Optional[float] = None
    dimensions: Optional[ImageDimensions] = None

    # content phase breakdown
    title_score: float = 0.0
    query_score: float = 0.0
    good_words: float = 0.0
    bad_words: float = 0.0
    bad_fname_words: float = 0.0

    # size phase breakdown
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "src": self.src,
            "title": self.title,
            "class": self.css_class,
            "alt": self.alt,
            "is_meta": self.is_meta,
            "doc_title": self.doc_title,
            "query": self.query,
            "score": self.score,
            "size_score": self.size_score,
            "title_score": self.title_score,
            "query_score": self.query_score,
            "good_words": self.good_words,
            "bad_words": self.bad_words,
            "bad_fname_words": self.bad_fname_words,
            "dimensions": None,
        }
        if self.dimensions:
            data["dimensions"] = {"width": self.dimensions.width, "height": self.dimensions.height}
        data.update(self.details)
        return data
