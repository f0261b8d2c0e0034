"""FastAPI routes for batch processing, dataset overview and reset."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.processing_controller import (
	batch_process,
	get_overview,
	list_annotation_results,
	reset_processing,
)

router = APIRouter(tags=["processing"])


class BatchProcessPayload(BaseModel):
	image_ids: Optional[List[int]] = None
	process_all_pending: bool = False


@router.post("/processing/batch")
async def batch_process_route(request: Request, payload: BatchProcessPayload):
	try:
		return await batch_process(request, payload.image_ids, payload.process_all_pending)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/processing/reset")
async def reset_processing_route(request: Request):
	try:
		return await reset_processing(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/annotation-results")
async def list_annotation_results_route(request: Request):
	try:
		return await list_annotation_results(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/overview")
async def overview_route(request: Request):
	try:
		return await get_overview(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
