# best_image/validator/image_validator.py
# Responsibility: Confirm that an address serves a loadable image and read its pixel size.

import asyncio
import io
import re
import struct
from typing import Optional, Tuple
from urllib.parse import urlparse

import filetype
import httpx
from PIL import Image

from best_image.config.settings import settings
from best_image.crawler.candidate import ImageDimensions
from best_image.errors import (
    FetchError,
    ImageTimeoutError,
    ImageTransportError,
    InvalidUrlError,
    TypeMismatchError,
    UnsupportedTypeError,
)
from best_image.services.logr import LOGR
from best_image.validator.fetch_ledger import FetchLedger


# -------------------------------
# Constants
# -------------------------------
VALID_IMAGE_URL_RE = re.compile(r"^https?://\w\S+\.\S+$", re.I)
SIZING_EXTENSIONS = ("gif", "jpg", "jpeg", "bmp", "png", "psd", "tiff", "webp", "svg")
PIL_FORMATS = {
    "JPEG": "jpg",
    "MPO": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "BMP": "bmp",
    "TIFF": "tiff",
    "WEBP": "webp",
    "PSD": "psd",
}
SIGNATURE_BYTES = 261      # enough for filetype to recognize any image signature
PROBE_LIMIT_BYTES = 256 * 1024   # dimensions must be readable from this prefix
MAX_READ_BYTES = 10 * 1024 * 1024
LOADED_NO_CALC_SIZE = 10

SVG_TAG_RE = re.compile(rb"<svg\b[^>]*>", re.I | re.S)
SVG_ATTR_RE = r"""\b{}\s*=\s*["']\s*([0-9.]+)"""
SVG_VIEWBOX_RE = re.compile(rb"""\bviewBox\s*=\s*["']\s*[-0-9.]+[\s,]+[-0-9.]+[\s,]+([0-9.]+)[\s,]+([0-9.]+)""", re.I)

# Pillow raises any of these while a header is still incomplete
PROBE_ERRORS = (
    OSError, SyntaxError, ValueError, EOFError, IndexError, TypeError,
    struct.error, Image.DecompressionBombError,
)


def extension_supported_for_sizing(img_url: str) -> Tuple[str, bool]:
    """
    Returns (extension, supported) for the url path. Unsupported files are
    only checked for existence and a recognizable image signature.
    """
    try:
        pathname = urlparse(img_url).path
    except ValueError:
        pathname = ""
    if not pathname:
        return "", False
    ext = pathname[pathname.rfind(".") + 1:].lower()
    return ext, ext in SIZING_EXTENSIONS


def probe_dimensions(data: bytes) -> Optional[Tuple[str, int, int]]:
    """
    Attempts to read (type, width, height) from the bytes read so far.
    Returns None when the header is not complete (or not an image).
    """
    if not data:
        return None

    svg = _probe_svg(data)
    if svg:
        return svg

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_type = PIL_FORMATS.get(img.format or "", (img.format or "").lower())
            return image_type, img.width, img.height
    except PROBE_ERRORS:
        return None


def _probe_svg(data: bytes) -> Optional[Tuple[str, int, int]]:
    match = SVG_TAG_RE.search(data[:4096])
    if not match:
        return None
    tag = match.group(0)

    width = re.search(SVG_ATTR_RE.format("width").encode(), tag)
    height = re.search(SVG_ATTR_RE.format("height").encode(), tag)
    try:
        if width and height:
            return "svg", int(float(width.group(1))), int(float(height.group(1)))
        viewbox = SVG_VIEWBOX_RE.search(tag)
        if viewbox:
            return "svg", int(float(viewbox.group(1))), int(float(viewbox.group(2)))
    except ValueError:
        return None
    return None


# -------------------------------
# Image Validator
# -------------------------------
class ImageValidator:
    """
    Validates candidate image addresses with a bounded, partial read.

    Each URL is fetched at most once at a time: concurrent validations share
    the in-flight fetch through the FetchLedger, which also keeps finished
    results for a few seconds.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ledger: Optional[FetchLedger] = None,
        timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.timeout = timeout or settings.VALIDATOR.TIMEOUT_SECONDS
        self.ledger = ledger or FetchLedger(ttl_seconds=settings.VALIDATOR.CACHE_TTL_SECONDS)
        self.headers = {"User-Agent": settings.FETCH.USER_AGENT}

    async def validate(self, img_url: str) -> ImageDimensions:
        """
        Checks that the image loads and returns its dimensions.

        Raises:
            InvalidUrlError: The address is not a fetchable http(s) url.
            FetchError: UnsupportedTypeError, TypeMismatchError,
                ImageTimeoutError or ImageTransportError.
        """
        # data URIs are accepted as they are
        if img_url and img_url.startswith("data:"):
            return ImageDimensions(
                loaded=True,
                width=settings.VALIDATOR.DATA_URI_WIDTH,
                height=settings.VALIDATOR.DATA_URI_HEIGHT,
                note="data_uri",
            )

        if not img_url or not VALID_IMAGE_URL_RE.match(img_url):
            raise InvalidUrlError(f"Invalid image url: {img_url!r}")

        return await self.ledger.fetch(img_url, lambda: self._check_image_url(img_url))

    async def _check_image_url(self, img_url: str) -> ImageDimensions:
        LOGR.debug(f"[Validator] Checking image: {img_url}")
        try:
            dimensions = await asyncio.wait_for(self.get_image_size(img_url), timeout=self.timeout)
        except FetchError as e:
            LOGR.debug(f"[Validator] Not a valid image: {img_url} - {e}")
            raise
        except asyncio.TimeoutError:
            LOGR.debug(f"[Validator] Timeout reached, aborted: {img_url}")
            raise ImageTimeoutError(context={"url": img_url})

        LOGR.debug(f"[Validator] Image passed validation: {img_url} {dimensions}")
        return dimensions

    async def get_image_size(self, img_url: str) -> ImageDimensions:
        """
        Streams the image and stops as soon as the header yields a size.
        Leaving the stream context early closes the connection, so the rest
        of the body is never transferred.
        """
        ext, supported = extension_supported_for_sizing(img_url)
        buffer = bytearray()
        probed = None
        probing = supported

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", img_url) as response:
                    if not 200 <= response.status_code < 300:
                        raise ImageTransportError(
                            f"HTTP {response.status_code}",
                            {"url": img_url, "status_code": response.status_code},
                        )

                    async for chunk in response.aiter_bytes():
                        buffer.extend(chunk)
                        if probing:
                            probed = probe_dimensions(bytes(buffer[:PROBE_LIMIT_BYTES]))
                            if probed:
                                break
                            probing = len(buffer) < PROBE_LIMIT_BYTES
                        elif not supported and len(buffer) >= SIGNATURE_BYTES:
                            break
                        if len(buffer) >= MAX_READ_BYTES:
                            break

        except httpx.TimeoutException as e:
            raise ImageTimeoutError(f"Timeout: {e}", {"url": img_url})
        except httpx.HTTPError as e:
            LOGR.error(f"[Validator] Error calling http: {img_url} - {e}")
            raise ImageTransportError(f"Could not open file: {e}", {"url": img_url})

        return self.process_file_end(bytes(buffer), ext, supported, probed)

    def process_file_end(
        self,
        data: bytes,
        ext: str,
        supported: bool,
        probed: Optional[Tuple[str, int, int]] = None,
    ) -> ImageDimensions:
        """Resolves the final outcome from the bytes that were read."""
        if not supported:
            kind = filetype.guess(data) if data else None
            if kind and kind.mime.startswith("image/"):
                return ImageDimensions(loaded=True, image_type=kind.extension, note="existence_only")
            raise UnsupportedTypeError("could not verify the image type")

        probed = probed or probe_dimensions(data[:PROBE_LIMIT_BYTES])
        if probed is None:
            return ImageDimensions(
                loaded=True,
                width=LOADED_NO_CALC_SIZE,
                height=LOADED_NO_CALC_SIZE,
                note="loaded_no_calc",
            )

        image_type, width, height = probed
        # a sniffed type other than the extension means the bytes were misread,
        # except for jpg which is the generic fallback
        if image_type and ext and image_type != ext and image_type != "jpg":
            raise TypeMismatchError(f"type mismatch: {image_type}", {"ext": ext, "type": image_type})

        return ImageDimensions(loaded=True, width=width, height=height, image_type=image_type)
