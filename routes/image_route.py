from fastapi import APIRouter, HTTPException, Request

from controllers.image_controller import get_thumbnail

router = APIRouter()


@router.get("/images/{image_key}/thumbnail")
async def get_image_thumbnail(request: Request, image_key: str):
	"""Return the PNG thumbnail bytes for a cached scan image."""
	try:
		return await get_thumbnail(request, image_key)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
