"""Dataset-wide progress rollups."""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from dal.annotation_dal import AnnotationDAL
from dal.image_dal import ImageDAL
from models.annotation_record import AnnotationRecord, AnnotationStatus, DatasetOverview
from services.errors import IntegrityViolationError


def build_overview(total_images: int, results: Sequence[AnnotationRecord]) -> DatasetOverview:
    """Roll `results` up against `total_images`.

    Raises:
        IntegrityViolationError: If there are more results than images.
    """
    processed = len(results)
    pending = total_images - processed
    if pending < 0:
        raise IntegrityViolationError(
            f"{processed} annotation results exist for only {total_images} images"
        )

    by_status = Counter(r.status for r in results)
    average = sum(r.confidence_score for r in results) / processed if processed else 0.0
    completion = processed / total_images if total_images else 0.0

    return DatasetOverview(
        total_images=total_images,
        processed_images=processed,
        pending_images=pending,
        annotated_images=by_status.get(AnnotationStatus.ANNOTATED, 0),
        skipped_images=by_status.get(AnnotationStatus.SKIPPED, 0),
        manual_review_images=by_status.get(AnnotationStatus.MANUAL_REVIEW, 0),
        average_confidence=average,
        processing_completion_rate=completion,
    )


class OverviewService:
    """Read the store and compute the dataset overview."""

    def __init__(self, image_dal: ImageDAL, annotation_dal: AnnotationDAL) -> None:
        self.image_dal = image_dal
        self.annotation_dal = annotation_dal

    async def get_overview(self) -> DatasetOverview:
        total = await self.image_dal.count_images()
        results = await self.annotation_dal.list_results()
        return build_overview(total, results)
