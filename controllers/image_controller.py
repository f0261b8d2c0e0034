from fastapi import Request, HTTPException
from typing import Any, Dict, List, Optional

from controllers.processing_controller import to_http_exception
from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.errors import PipelineError


def _image_dal(request: Request) -> ImageDAL:
    return ImageDAL(request.app.state.db_initializer)


async def create_image(
    request: Request,
    filename: str,
    storage_path: str,
    file_size: int,
    width: int,
    height: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Register a new image in the dataset.

    The image starts pending: no annotation result exists for it yet.

    Returns:
        The stored image as a dict, including its new `id`.
    """
    record = ImageRecord(
        id=None,
        filename=filename,
        storage_path=storage_path,
        file_size=file_size,
        width=width,
        height=height,
        metadata=metadata,
    )
    try:
        created = await _image_dal(request).create_image(record)
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return created.to_dict()


async def list_images(request: Request, limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
    """Return images ordered by id, optionally one page at a time."""
    try:
        images = await _image_dal(request).list_images(limit=limit, offset=offset)
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return [image.to_dict() for image in images]


async def list_images_with_annotations(request: Request) -> List[Dict[str, Any]]:
    """Return every image together with its annotation result (None while pending)."""
    try:
        views = await _image_dal(request).list_images_with_annotations()
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return [view.to_dict() for view in views]


async def get_image(request: Request, image_id: int) -> Dict[str, Any]:
    """Fetch one image and its annotation result.

    Raises:
        HTTPException(404) if the image is not found.
    """
    try:
        view = await _image_dal(request).get_image_with_annotation(int(image_id))
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    if view is None:
        raise HTTPException(status_code=404, detail=f"Image with ID {image_id} not found")
    return view.to_dict()


async def delete_image(request: Request, image_id: int) -> Dict[str, bool]:
    """Delete an image; its annotation result is removed with it."""
    try:
        deleted = await _image_dal(request).delete_image(int(image_id))
    except PipelineError as exc:
        raise to_http_exception(exc) from exc
    return {"success": deleted}
