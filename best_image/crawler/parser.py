# best_image/crawler/parser.py
# Responsibility: Turn an HTML document into a flat, de-duplicated list of image candidates.

import asyncio
from typing import List, Optional, TypedDict

from bs4 import BeautifulSoup, Tag

from best_image.config.settings import settings
from best_image.crawler.candidate import ImageCandidate
from best_image.crawler.fetcher import DocumentFetcher
from best_image.crawler.stylesheet import extract_background_urls
from best_image.crawler.url_resolver import resolve
from best_image.errors import CssParseError, InvalidUrlError, StylesheetFetchError
from best_image.services.logr import LOGR


# -------------------------------
# Constants
# -------------------------------
META_IMAGE_SELECTOR = ", ".join([
    "meta[property='og:image']",
    "meta[name='twitter:image:src']",
    "meta[name='twitter:image']",
    "meta[name='twitter:image0']",
])


# -------------------------------
# TypedDicts
# -------------------------------
class RawImage(TypedDict, total=False):
    src: Optional[str]
    title: Optional[str]
    css_class: Optional[str]
    alt: Optional[str]
    is_meta: bool


# -------------------------------
# Candidate Extractor
# -------------------------------
class CandidateExtractor:
    """
    Collects image candidates from three sources, in this order:
    - curated meta tags (og:image, twitter:image variants)
    - inline <img> elements (src / srcset / data-src)
    - background images declared in linked stylesheets
    """

    def __init__(self, fetcher: Optional[DocumentFetcher] = None, max_meta_images: Optional[int] = None):
        self.fetcher = fetcher or DocumentFetcher()
        self.max_meta_images = max_meta_images or settings.SELECTOR.MAX_META_IMAGES

    async def extract_from_html(self, url: str, html: str, query: Optional[str] = None) -> List[ImageCandidate]:
        """Parses raw HTML and extracts candidates, using the page <title> as context."""
        soup = BeautifulSoup(html, "html.parser")
        return await self.extract(url, soup, self.extract_title(soup), query)

    async def extract(
        self,
        url: str,
        soup: BeautifulSoup,
        title: str,
        query: Optional[str] = None,
    ) -> List[ImageCandidate]:
        """
        Extracts every candidate from the document.

        Args:
            url (str): Address of the document, used to locate stylesheets.
            soup (BeautifulSoup): Parsed document.
            title (str): Document title (or caller supplied context).
            query (str): Optional topical query.

        Returns:
            List[ImageCandidate]: Meta images first, then inline images in
            document order, then CSS images in stylesheet order. Each src
            appears once (first occurrence wins).
        """
        images: List[RawImage] = []
        images.extend(self.get_meta_images(soup))
        images.extend(self.extract_image_tags(soup))
        images.extend(await self.get_css_images(url, soup))

        return self.flatten(images, title, query)

    # ---------------------------
    # Title
    # ---------------------------
    def extract_title(self, soup: BeautifulSoup) -> str:
        title_tag = soup.find("title")
        if title_tag and title_tag.get_text(strip=True):
            return title_tag.get_text(strip=True)
        return ""

    # ---------------------------
    # Meta images
    # ---------------------------
    def get_meta_images(self, soup: BeautifulSoup) -> List[RawImage]:
        """
        Returns at most max_meta_images curated images. Nothing is returned
        unless the first matching tag carries a non-empty content attribute.
        """
        tags = soup.select(META_IMAGE_SELECTOR)
        if not tags or not tags[0].get("content"):
            return []

        images: List[RawImage] = []
        for tag in tags[:self.max_meta_images]:
            if tag.get("content") is None:
                continue
            images.append(RawImage(
                src=tag.get("content"),
                title=_attr(tag, "title"),
                css_class=_attr(tag, "class"),
                alt=_attr(tag, "alt"),
                is_meta=True,
            ))
        return images

    # ---------------------------
    # Inline images
    # ---------------------------
    def extract_image_tags(self, soup: BeautifulSoup) -> List[RawImage]:
        images: List[RawImage] = []
        for img in soup.find_all("img"):
            if not isinstance(img, Tag):
                continue

            src = _attr(img, "src")

            # srcset support
            if not src and img.get("srcset"):
                first = _attr(img, "srcset").split(",")[0].split()
                src = first[0] if first else src

            # Lazy-load support
            if not src and img.get("data-src"):
                src = _attr(img, "data-src")

            images.append(RawImage(
                src=src,
                title=_attr(img, "title"),
                css_class=_attr(img, "class"),
                alt=_attr(img, "alt"),
                is_meta=False,
            ))
        return images

    # ---------------------------
    # CSS background images
    # ---------------------------
    async def get_css_images(self, url: str, soup: BeautifulSoup) -> List[RawImage]:
        """
        Fetches every linked stylesheet concurrently and harvests background
        images. A stylesheet that fails to load or parse is skipped.
        """
        hrefs = [
            link.get("href")
            for link in soup.find_all("link", rel="stylesheet")
            if isinstance(link, Tag) and link.get("href")
        ]
        if not hrefs:
            return []

        results = await asyncio.gather(*(self._stylesheet_images(url, href) for href in hrefs))

        images: List[RawImage] = []
        for found in results:
            images.extend(RawImage(src=src, is_meta=False) for src in found)
        return images

    async def _stylesheet_images(self, page_url: str, href: str) -> List[str]:
        try:
            css_url = resolve(page_url, href)
            css_text = await self.fetcher.fetch_stylesheet(css_url)
            urls = extract_background_urls(css_text)
        except (InvalidUrlError, StylesheetFetchError, CssParseError) as e:
            LOGR.debug(f"[Extractor] Skipping stylesheet {href}: {e}")
            return []

        for img_url in urls:
            LOGR.debug(f"[Extractor] IMAGE URL = {img_url}")
        return urls

    # ---------------------------
    # Flatten + dedupe
    # ---------------------------
    def flatten(self, images: List[RawImage], title: str, query: Optional[str]) -> List[ImageCandidate]:
        candidates: List[ImageCandidate] = []
        seen = set()
        for image in images:
            src = image.get("src")
            if src in seen:
                continue
            seen.add(src)
            candidates.append(ImageCandidate(
                src=src,
                title=image.get("title"),
                css_class=image.get("css_class"),
                alt=image.get("alt"),
                is_meta=image.get("is_meta", False),
                doc_title=title,
                query=query,
            ))
        return candidates


def _attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value
