"""
Feed API — Image Route
========================

What:  Serves stored post images at /<image_dir>/<path>.
Why:   A post's imageUrl is a path relative to the storage root
       (images/2024/01/15/<uuid>.png), so clients load it from /<imageUrl>.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from feed_api.config import settings
from feed_api.exceptions import NotFoundError
from feed_api.services.file_service import file_service

router = APIRouter(tags=["Images"])


@router.get(
    f"/{settings.image_dir}/{{file_path:path}}",
    summary="Serve a stored post image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "Image not found"},
    },
)
async def serve_image(file_path: str) -> FileResponse:
    """
    Security:
        file_service.resolve() rejects paths that leave the storage root.
    """
    image_url = f"{settings.image_dir}/{file_path}"
    full_path = file_service.resolve(image_url)

    if not full_path.is_file():
        raise NotFoundError(resource="image", resource_id=image_url)

    # media_type is guessed from the file extension
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
