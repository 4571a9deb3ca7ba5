# best_image/crawler/url_resolver.py
# Responsibility: Resolve image and stylesheet references against the page they came from.

from typing import Optional
from urllib.parse import urljoin, urlparse

from best_image.errors import InvalidUrlError


def resolve(base_url: str, candidate_ref: Optional[str]) -> str:
    """
    Resolves a possibly relative reference to an absolute URL.

    Absolute references pass through, scheme-relative references take the
    base scheme, root- and path-relative references resolve against the
    base origin/path. An empty reference resolves to the base URL.

    Raises:
        InvalidUrlError: If the reference (or base) cannot be parsed.
    """
    ref = (candidate_ref or "").strip()
    try:
        return urljoin(base_url, ref)
    except ValueError as e:
        raise InvalidUrlError(f"Cannot resolve {ref!r} against {base_url}: {e}")


def is_path_relative(candidate_ref: Optional[str]) -> bool:
    ref = (candidate_ref or "").strip()
    if not ref or ref.startswith(("/", "data:")):
        return False
    try:
        return not urlparse(ref).scheme
    except ValueError:
        return False


def resolve_from_root(base_url: str, candidate_ref: Optional[str]) -> Optional[str]:
    """
    Reinterprets a path-relative reference as rooted at the base origin.

    Some sites rewrite page paths so that "image.jpg" on /page.php is only
    reachable as /image.jpg. Returns None when the reference is not
    path-relative, since the rewrite would not change anything.
    """
    if not is_path_relative(candidate_ref):
        return None
    return resolve(base_url, "/" + candidate_ref.strip())
