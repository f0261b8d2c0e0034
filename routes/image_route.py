from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from controllers.image_controller import (
	create_image,
	delete_image,
	get_image,
	list_images,
	list_images_with_annotations,
)
from controllers.processing_controller import process_image

router = APIRouter(prefix="/images", tags=["images"])


class CreateImagePayload(BaseModel):
	filename: str = Field(min_length=1)
	storage_path: str = Field(min_length=1)
	file_size: int = Field(gt=0)
	width: int = Field(gt=0)
	height: int = Field(gt=0)
	metadata: Optional[Dict[str, Any]] = None


@router.post("", status_code=201)
async def create_image_route(request: Request, payload: CreateImagePayload):
	"""Register an image; it stays pending until processed."""
	try:
		return await create_image(
			request,
			payload.filename,
			payload.storage_path,
			payload.file_size,
			payload.width,
			payload.height,
			payload.metadata,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("")
async def list_images_route(
	request: Request,
	limit: Optional[int] = Query(None, ge=1),
	offset: int = Query(0, ge=0),
):
	"""List images ordered by id; `limit` and `offset` page through them."""
	try:
		return await list_images(request, limit=limit, offset=offset)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/with-annotations")
async def list_images_with_annotations_route(request: Request):
	try:
		return await list_images_with_annotations(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{image_id}")
async def get_image_route(request: Request, image_id: int):
	"""Return the image with its annotation result, or 404."""
	try:
		return await get_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{image_id}")
async def delete_image_route(request: Request, image_id: int):
	try:
		return await delete_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{image_id}/process")
async def process_image_route(request: Request, image_id: int):
	"""Run one image through the annotator and store the outcome."""
	try:
		return await process_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
