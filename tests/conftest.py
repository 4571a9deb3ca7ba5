import io

import pytest
from PIL import Image


def _image_bytes(width: int, height: int, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_bytes():
    """Factory returning encoded image bytes of the requested size."""
    return _image_bytes
