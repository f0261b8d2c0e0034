"""Annotation domain models: statuses, confidence bands and result rows."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from models.image_record import ImageRecord


class AnnotationStatus(str, Enum):
    """Terminal processing states. Pending is the absence of a result row."""

    ANNOTATED = "annotated"
    SKIPPED = "skipped"
    MANUAL_REVIEW = "manual_review"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Outcome:
    """Decision produced by the outcome classifier for one image."""

    status: AnnotationStatus
    confidence_score: float
    confidence_level: ConfidenceLevel
    decision_reason: str
    annotations: Optional[Dict[str, Any]] = None


@dataclass
class AnnotationRecord:
    """In-memory representation of a row in the ANNOTATION_RESULT table.

    Attributes:
        id: Primary key (None for new records).
        image_id: Id of the annotated IMAGE row; unique across the table.
        status: Terminal processing state.
        confidence_score: Annotator certainty in [0, 1].
        confidence_level: Band derived from `confidence_score`.
        decision_reason: Human-readable rationale for `status`.
        annotations: Structured findings, present only when annotated.
        processing_time_ms: Wall-clock time spent annotating and classifying.
        processed_at: Unix timestamp (seconds) when processing finished.
        created_at: Unix timestamp (seconds) when the row was written.
    """

    id: Optional[int]
    image_id: int
    status: AnnotationStatus
    confidence_score: float
    confidence_level: ConfidenceLevel
    decision_reason: str
    annotations: Optional[Dict[str, Any]] = None
    processing_time_ms: int = 0
    processed_at: Optional[int] = None
    created_at: Optional[int] = None

    @classmethod
    def from_outcome(cls, image_id: int, outcome: Outcome, processing_time_ms: int) -> "AnnotationRecord":
        """Build an unsaved record from a classifier outcome."""
        return cls(
            id=None,
            image_id=image_id,
            status=outcome.status,
            confidence_score=outcome.confidence_score,
            confidence_level=outcome.confidence_level,
            decision_reason=outcome.decision_reason,
            annotations=outcome.annotations,
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "image_id": self.image_id,
            "status": self.status.value,
            "confidence_score": self.confidence_score,
            "confidence_level": self.confidence_level.value,
            "decision_reason": self.decision_reason,
            "annotations": self.annotations,
            "processing_time_ms": self.processing_time_ms,
            "processed_at": self.processed_at,
            "created_at": self.created_at,
        }


@dataclass
class ImageWithAnnotation:
    """An image joined with its annotation result, if it has one."""

    image: ImageRecord
    annotation_result: Optional[AnnotationRecord] = None

    @property
    def is_pending(self) -> bool:
        return self.annotation_result is None

    def to_dict(self) -> Dict[str, Any]:
        data = self.image.to_dict()
        data["annotation_result"] = self.annotation_result.to_dict() if self.annotation_result else None
        return data


@dataclass
class DatasetOverview:
    """Dataset-wide progress rollup. Rates are fractions in [0, 1]."""

    total_images: int = 0
    processed_images: int = 0
    pending_images: int = 0
    annotated_images: int = 0
    skipped_images: int = 0
    manual_review_images: int = 0
    average_confidence: float = 0.0
    processing_completion_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class BatchSelector:
    """Which images a batch run targets: explicit ids, or everything pending."""

    image_ids: Optional[List[int]] = None
    process_all_pending: bool = False
