"""Drive single-image and batch annotation runs."""

from __future__ import annotations

import logging
import time
from typing import List

from dal.annotation_dal import AnnotationDAL
from dal.image_dal import ImageDAL
from models.annotation_record import AnnotationRecord, BatchSelector
from models.image_record import ImageRecord
from services.annotation.base_annotator import BaseAnnotator
from services.annotation.outcome_classifier import classify_outcome
from services.errors import AnnotatorError, ImageNotFoundError, PipelineError

LOGGER = logging.getLogger(__name__)


class ProcessingOrchestrator:
    """Run images through the annotator and persist the classified outcome.

    Args:
        image_dal: Access to IMAGE rows.
        annotation_dal: Access to ANNOTATION_RESULT rows.
        annotator: Collaborator producing raw scores and findings.
        reprocess_policy: `replace` overwrites an image's existing result;
            `reject` raises AnnotationConflictError instead.
    """

    def __init__(
        self,
        image_dal: ImageDAL,
        annotation_dal: AnnotationDAL,
        annotator: BaseAnnotator,
        reprocess_policy: str = "replace",
    ) -> None:
        if reprocess_policy not in ("replace", "reject"):
            raise ValueError(f"Unknown reprocess policy: {reprocess_policy!r}")
        self.image_dal = image_dal
        self.annotation_dal = annotation_dal
        self.annotator = annotator
        self.reprocess_policy = reprocess_policy

    async def process_image(self, image_id: int) -> AnnotationRecord:
        """Annotate one image and store its result.

        Raises:
            ImageNotFoundError: If no image has `image_id`.
            AnnotatorError: If the annotator fails or returns an unusable score.
            AnnotationConflictError: If the result cannot be stored.
            StoreError: If the database fails.
        """
        image = await self.image_dal.get_image_by_id(image_id)
        if image is None:
            raise ImageNotFoundError(image_id)
        return await self._process(image)

    async def batch_process(self, selector: BatchSelector) -> List[AnnotationRecord]:
        """Process the images chosen by `selector`, in order, stopping at the first failure.

        A non-empty `image_ids` wins over `process_all_pending`. Explicit ids
        are checked before anything is written, so an unknown id leaves the
        store untouched.
        """
        if selector.image_ids:
            image_ids = [int(i) for i in selector.image_ids]
            missing = set(image_ids) - await self.image_dal.existing_ids(image_ids)
            if missing:
                raise ImageNotFoundError(min(missing))
        elif selector.process_all_pending:
            image_ids = await self.image_dal.list_pending_image_ids()
        else:
            return []

        if not image_ids:
            return []

        LOGGER.info("Batch processing %d image(s)", len(image_ids))
        results: List[AnnotationRecord] = []
        for image_id in image_ids:
            try:
                results.append(await self.process_image(image_id))
            except PipelineError:
                LOGGER.error(
                    "Batch aborted at image %s after %d of %d image(s)", image_id, len(results), len(image_ids)
                )
                raise
        LOGGER.info("Batch finished: %d image(s) processed", len(results))
        return results

    async def _process(self, image: ImageRecord) -> AnnotationRecord:
        start = time.perf_counter()
        try:
            raw = await self.annotator.analyze(image)
            outcome = classify_outcome(raw.score, force_skip=raw.force_skip, findings=raw.findings)
        except AnnotatorError:
            raise
        except Exception as exc:
            LOGGER.error("Annotator failed for image %s: %s", image.id, exc)
            raise AnnotatorError(f"Annotator failed for image {image.id}: {exc}", image_id=image.id) from exc
        elapsed_ms = max(int(round((time.perf_counter() - start) * 1000)), 0)

        record = AnnotationRecord.from_outcome(image.id, outcome, elapsed_ms)
        saved = await self.annotation_dal.save_result(
            record, replace_existing=self.reprocess_policy == "replace"
        )
        LOGGER.info(
            "Image %s -> %s (score=%.3f, level=%s, %d ms)",
            image.id,
            saved.status.value,
            saved.confidence_score,
            saved.confidence_level.value,
            saved.processing_time_ms,
        )
        return saved
