"""Exceptions raised by the best image pipeline."""

from typing import Optional


class BestImageError(Exception):
    """Base exception for the best image pipeline."""

    def __init__(self, message: str, code: str = "BEST_IMAGE_ERROR", context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}


# -------------------------------
# Document level (fatal for a lookup)
# -------------------------------
class DocumentFetchError(BestImageError):
    """The target page could not be loaded (transport failure or non-200 status)."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "DOCUMENT_FETCH_ERROR", context)


class NoImagesFoundError(BestImageError):
    """No candidate survived extraction."""

    def __init__(self, message: str = "No images found", context: Optional[dict] = None):
        super().__init__(message, "NO_IMAGES_FOUND", context)


class NoValidImageError(BestImageError):
    """Every batch was validated and none produced a loadable image."""

    def __init__(self, message: str = "No valid image found", context: Optional[dict] = None):
        super().__init__(message, "NO_VALID_IMAGE", context)


# -------------------------------
# Stylesheet level (soft, skip the stylesheet)
# -------------------------------
class StylesheetFetchError(BestImageError):
    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "STYLESHEET_FETCH_ERROR", context)


class CssParseError(BestImageError):
    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "CSS_PARSE_ERROR", context)


# -------------------------------
# Candidate level (soft, drop the candidate)
# -------------------------------
class InvalidUrlError(BestImageError):
    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "INVALID_URL", context)


class FetchError(BestImageError):
    """Base for image validation failures."""

    def __init__(self, message: str, code: str = "FETCH_ERROR", context: Optional[dict] = None):
        super().__init__(message, code, context)


class UnsupportedTypeError(FetchError):
    def __init__(self, message: str = "bad image type", context: Optional[dict] = None):
        super().__init__(message, "UNSUPPORTED_TYPE", context)


class TypeMismatchError(FetchError):
    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "TYPE_MISMATCH", context)


class ImageTimeoutError(FetchError, TimeoutError):
    def __init__(self, message: str = "Timeout", context: Optional[dict] = None):
        super().__init__(message, "TIMEOUT", context)


class ImageTransportError(FetchError):
    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, "TRANSPORT_ERROR", context)
