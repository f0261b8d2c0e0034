import os
import sys
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

# Add project root to Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from dal.annotation_dal import AnnotationDAL
from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.annotation.base_annotator import AnnotatorOutput, BaseAnnotator
from utils.database_init import AsyncDatabaseInitializer

DEFAULT_FINDINGS = {"objects": [{"type": "person", "confidence": 0.9, "bbox": [10, 10, 50, 80]}], "total_objects": 1}


class FixedAnnotator(BaseAnnotator):
    """Deterministic annotator returning configured outputs per image id."""

    name = "fixed"

    def __init__(
        self,
        default: Optional[AnnotatorOutput] = None,
        by_id: Optional[Dict[int, AnnotatorOutput]] = None,
    ) -> None:
        self.default = default or AnnotatorOutput(score=0.9, findings=DEFAULT_FINDINGS)
        self.by_id = dict(by_id or {})
        self.calls: List[int] = []

    async def analyze(self, image: ImageRecord) -> AnnotatorOutput:
        self.calls.append(image.id)
        return self.by_id.get(image.id, self.default)


class FailingAnnotator(BaseAnnotator):
    """Annotator that fails for selected image ids."""

    name = "failing"

    def __init__(self, fail_ids=None, exc: Optional[Exception] = None) -> None:
        self.fail_ids = set(fail_ids) if fail_ids is not None else None
        self.exc = exc or ConnectionError("model endpoint unreachable")
        self.calls: List[int] = []

    async def analyze(self, image: ImageRecord) -> AnnotatorOutput:
        self.calls.append(image.id)
        if self.fail_ids is None or image.id in self.fail_ids:
            raise self.exc
        return AnnotatorOutput(score=0.8, findings=DEFAULT_FINDINGS)


def make_image(filename: str = "image.jpg", **overrides) -> ImageRecord:
    fields = dict(
        id=None,
        filename=filename,
        storage_path=f"/data/images/{filename}",
        file_size=2048,
        width=640,
        height=480,
        metadata=None,
    )
    fields.update(overrides)
    return ImageRecord(**fields)


@pytest.fixture
def db_initializer(tmp_path):
    """Fixture providing a fresh SQLite database in a temporary directory."""
    return AsyncDatabaseInitializer(tmp_path)


@pytest.fixture
def image_dal(db_initializer):
    return ImageDAL(db_initializer)


@pytest.fixture
def annotation_dal(db_initializer):
    return AnnotationDAL(db_initializer)


@pytest_asyncio.fixture
async def seeded_images(image_dal):
    """Four stored images with ids 1..4."""
    images = []
    for idx in range(1, 5):
        images.append(await image_dal.create_image(make_image(f"img_{idx}.jpg")))
    return images
