"""
File upload endpoint for listing images.

The returned URL is what clients put into ``ListingCreate.images``.
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from campus_market_api.app.core import storage
from campus_market_api.app.core.errors import to_http_exception
from campus_market_api.app.core.security import get_current_user


router = APIRouter()


class UploadResult(BaseModel):
    url: str
    path: str


@router.post("/listing-image", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload_listing_image(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
) -> UploadResult:
    try:
        object_name = storage.build_object_name("listings", current_user["user_id"], file.filename or "")
        content = await file.read()
        url = storage.save_object(object_name, content)
    except ValueError as e:
        raise to_http_exception(e)
    finally:
        await file.close()
    return UploadResult(url=url, path=object_name)
