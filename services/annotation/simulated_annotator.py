"""Random stand-in for a real image-analysis model."""

from __future__ import annotations

import random
from typing import Any, Dict, Optional

from models.image_record import ImageRecord
from services.annotation.base_annotator import AnnotatorOutput, BaseAnnotator


class SimulatedAnnotator(BaseAnnotator):
    """Produce uniform random scores, a random quality gate and one mock detection.

    Args:
        skip_probability: Chance that an image is rejected by the quality gate.
        seed: Optional seed; two annotators with the same seed produce the same sequence.
    """

    name = "simulated"

    def __init__(self, skip_probability: float = 0.1, seed: Optional[int] = None) -> None:
        if not 0.0 <= skip_probability <= 1.0:
            raise ValueError("skip_probability must be between 0 and 1")
        self.skip_probability = skip_probability
        self._rng = random.Random(seed)

    async def analyze(self, image: ImageRecord) -> AnnotatorOutput:
        score = self._rng.random()
        force_skip = self._rng.random() < self.skip_probability
        return AnnotatorOutput(score=score, findings=self._mock_findings(image, score), force_skip=force_skip)

    def _mock_findings(self, image: ImageRecord, score: float) -> Dict[str, Any]:
        x = self._rng.randint(0, max(image.width // 2, 0))
        y = self._rng.randint(0, max(image.height // 2, 0))
        w = self._rng.randint(1, max(image.width - x, 1))
        h = self._rng.randint(1, max(image.height - y, 1))
        return {
            "objects": [{"type": "object", "confidence": score, "bbox": [x, y, w, h]}],
            "total_objects": 1,
        }
