"""Typed errors raised by the annotation pipeline."""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for annotation pipeline failures."""


class ImageNotFoundError(PipelineError, LookupError):
    """Raised when an operation targets an image id that does not exist."""

    def __init__(self, image_id: int) -> None:
        super().__init__(f"Image with ID {image_id} not found")
        self.image_id = image_id


class AnnotationConflictError(PipelineError):
    """Raised when an annotation result cannot be written for an image."""

    def __init__(self, image_id: int, detail: Optional[str] = None) -> None:
        message = f"Annotation result for image {image_id} conflicts with existing data"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.image_id = image_id


class CollaboratorError(PipelineError):
    """Raised when an external collaborator (annotator, store) fails."""


class AnnotatorError(CollaboratorError):
    """Raised when the annotator cannot analyze an image."""

    def __init__(self, message: str, image_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.image_id = image_id


class IntegrityViolationError(PipelineError):
    """Raised when stored rows break a referential invariant."""


class StoreError(CollaboratorError):
    """Raised when the record store cannot complete an operation."""
