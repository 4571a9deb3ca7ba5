# best_image/routers/image.py
# Responsibility: HTTP endpoints for best image lookups. Validates input and formats output.

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from best_image.api import get_default_service
from best_image.errors import DocumentFetchError, NoImagesFoundError, NoValidImageError
from best_image.services.best_image_service import BestImageService

router = APIRouter(
    prefix="/image",
    tags=["Image"]
)

# --- Pydantic Models ---
class BestImageResponse(BaseModel):
    url: str
    query: str
    image_url: str

class DebugResponse(BaseModel):
    url: str
    query: str
    image_url: Optional[str] = None
    error: Optional[str] = None
    debug_info: Dict[str, Any] = {}

# --- Endpoints ---
@router.get("", response_model=BestImageResponse)
async def best_image_endpoint(
    url: str = Query(..., min_length=1, description="Page to find an image for"),
    q: str = Query("", description="Optional topical query"),
    service: BestImageService = Depends(get_default_service)
):
    """
    Returns the most representative image of the page.
    """
    try:
        image_url = await service.get_best_image(url, q)
    except DocumentFetchError as e:
        raise HTTPException(status_code=502, detail=e.message)
    except (NoImagesFoundError, NoValidImageError) as e:
        raise HTTPException(status_code=404, detail=e.message)

    return BestImageResponse(url=url, query=q, image_url=image_url)

@router.get("/debug", response_model=DebugResponse)
async def best_image_debug_endpoint(
    url: str = Query(..., min_length=1, description="Page to find an image for"),
    q: str = Query("", description="Optional topical query"),
    service: BestImageService = Depends(get_default_service)
):
    """
    Runs an unbatched lookup and returns every intermediate candidate list.
    """
    result = await service.get_best_image_debug(url, q)
    return DebugResponse(
        url=url,
        query=q,
        image_url=result.image_url,
        error=result.error.message if result.error else None,
        debug_info=result.debug_info,
    )
