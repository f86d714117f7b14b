from fastapi import HTTPException, Request
from fastapi.responses import Response

from services.image_store import ImageStore


async def get_thumbnail(request: Request, image_key: str) -> Response:
    """Controller to fetch the thumbnail bytes for a cached scan image.

    Args:
        request: FastAPI Request (to access app.state.image_store).
        image_key: Key generated when the image was submitted.

    Returns:
        FastAPI `Response` with `content` set to raw PNG bytes and
        `media_type` set to `image/png`.

    Raises:
        HTTPException(404) if the image or thumbnail is not found.
    """
    image_store: ImageStore = request.app.state.image_store
    try:
        thumbnail = await image_store.get_thumbnail(image_key)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="Image not found") from exc

    if not thumbnail:
        raise HTTPException(status_code=404, detail="Thumbnail not available for this image")

    # Stored thumbnails are raw PNG bytes; return them directly
    return Response(content=thumbnail, media_type="image/png")
