"""Map annotator scores to terminal processing outcomes."""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, Optional

from models.annotation_record import AnnotationStatus, ConfidenceLevel, Outcome

LOW_CONFIDENCE_THRESHOLD = 0.3
HIGH_CONFIDENCE_THRESHOLD = 0.7

REASON_SKIPPED = "Image quality insufficient for processing"
REASON_MANUAL_REVIEW = "Low confidence score requires human review"
REASON_ANNOTATED = "Automated annotation completed successfully"


def confidence_band(score: float) -> ConfidenceLevel:
    """Return the confidence level for `score`; each threshold belongs to the band above it."""
    if score < LOW_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.LOW
    if score < HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH


def classify_outcome(
    score: float,
    force_skip: bool = False,
    findings: Optional[Dict[str, Any]] = None,
) -> Outcome:
    """Decide status, confidence level and reason for one annotator result.

    Findings are deep-copied and kept only for annotated outcomes. An
    annotated outcome with no findings stores an empty object so that
    annotated rows always carry annotations.

    Raises:
        ValueError: If `score` is NaN or outside [0, 1].
    """
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValueError(f"Confidence score must be a number, got {score!r}")
    if math.isnan(score) or not 0.0 <= score <= 1.0:
        raise ValueError(f"Confidence score must be within [0, 1], got {score!r}")

    score = float(score)
    level = confidence_band(score)

    if force_skip:
        return Outcome(AnnotationStatus.SKIPPED, score, level, REASON_SKIPPED)
    if level is ConfidenceLevel.LOW:
        return Outcome(AnnotationStatus.MANUAL_REVIEW, score, level, REASON_MANUAL_REVIEW)
    return Outcome(
        AnnotationStatus.ANNOTATED,
        score,
        level,
        REASON_ANNOTATED,
        annotations=copy.deepcopy(findings) if findings is not None else {},
    )
