"""Controllers for annotation processing, overview and reset."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from dal.annotation_dal import AnnotationDAL
from dal.image_dal import ImageDAL
from models.annotation_record import BatchSelector
from services.errors import (
    AnnotationConflictError,
    CollaboratorError,
    ImageNotFoundError,
    PipelineError,
)
from services.overview_service import OverviewService
from services.processing_service import ProcessingOrchestrator
from services.reset_service import ResetService


def to_http_exception(exc: PipelineError) -> HTTPException:
    """Translate a pipeline error into the matching HTTP status."""
    if isinstance(exc, ImageNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AnnotationConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    # Annotator and store failures.
    if isinstance(exc, CollaboratorError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _orchestrator(request: Request) -> ProcessingOrchestrator:
    state = request.app.state
    return ProcessingOrchestrator(
        ImageDAL(state.db_initializer),
        AnnotationDAL(state.db_initializer),
        state.annotator,
        reprocess_policy=state.settings.reprocess_policy,
    )


async def process_image(request: Request, image_id: int) -> Dict[str, Any]:
    """Annotate a single image and return the stored result."""
    try:
        result = await _orchestrator(request).process_image(int(image_id))
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return result.to_dict()


async def batch_process(
    request: Request,
    image_ids: Optional[List[int]] = None,
    process_all_pending: bool = False,
) -> List[Dict[str, Any]]:
    """Annotate the selected images and return their results in processing order."""
    selector = BatchSelector(image_ids=image_ids, process_all_pending=process_all_pending)
    try:
        results = await _orchestrator(request).batch_process(selector)
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return [r.to_dict() for r in results]


async def list_annotation_results(request: Request) -> List[Dict[str, Any]]:
    try:
        results = await AnnotationDAL(request.app.state.db_initializer).list_results()
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return [r.to_dict() for r in results]


async def get_overview(request: Request) -> Dict[str, Any]:
    """Return dataset-wide counts, average confidence and completion rate."""
    db_initializer = request.app.state.db_initializer
    service = OverviewService(ImageDAL(db_initializer), AnnotationDAL(db_initializer))
    try:
        overview = await service.get_overview()
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return overview.to_dict()


async def reset_processing(request: Request) -> Dict[str, Any]:
    """Remove every annotation result, returning all images to pending."""
    try:
        removed = await ResetService(AnnotationDAL(request.app.state.db_initializer)).reset_all()
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return {
        "success": True,
        "removed": removed,
        "message": f"Successfully reset processing state. Removed {removed} annotation results.",
    }
