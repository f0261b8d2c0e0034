"""
Base annotator interface and data structures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.image_record import ImageRecord


@dataclass(frozen=True)
class AnnotatorOutput:
    """Raw result of analyzing one image.

    Attributes:
        score: Annotator certainty in [0, 1].
        findings: Optional structured findings (objects, boxes, labels).
        force_skip: True when the annotator's quality gate rejects the image.
    """

    score: float
    findings: Optional[Dict[str, Any]] = None
    force_skip: bool = False


class BaseAnnotator(ABC):
    """
    Abstract base class for annotators.

    Implementations receive the image's descriptive attributes and return an
    `AnnotatorOutput`. They never decide the final status; that is left to
    the outcome classifier.
    """

    name: str = "annotator"

    @abstractmethod
    async def analyze(self, image: ImageRecord) -> AnnotatorOutput:
        """Analyze `image` and return its score, findings and skip signal."""
