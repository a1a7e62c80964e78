"""
Image API routes for the S3 Image Server.
Serves cached bucket listings as JSON.
"""

from typing import List

from fastapi import APIRouter, Depends, Request

from ...models.image import ObjectEntry
from ...services.query_service import ImageQueryService

router = APIRouter()


def get_query_service(request: Request) -> ImageQueryService:
    return request.app.state.query_service


@router.get("/images", response_model=List[ObjectEntry])
async def list_images(service: ImageQueryService = Depends(get_query_service)):
    """Return the cached listing of the whole bucket."""
    return service.list_images()


@router.get("/images/{folder_path:path}", response_model=List[ObjectEntry])
async def list_folder_images(
    folder_path: str,
    service: ImageQueryService = Depends(get_query_service),
):
    """Return the cached listing of one folder, or [] while it is first fetched."""
    if not folder_path:
        return service.list_images()
    return service.list_folder(folder_path)
