"""Print the annotation progress stored in the project's SQLite database.

This script prints the dataset overview followed by one line per image with
its processing status. It reuses the same `DATABASE_DIR` behavior as the
application via `utils.database_init.AsyncDatabaseInitializer`.

Run: set the `DATABASE_DIR` environment variable and run `python print_db.py`.
"""
import asyncio
from typing import List

from dotenv import load_dotenv

from dal.annotation_dal import AnnotationDAL
from dal.image_dal import ImageDAL
from models.annotation_record import DatasetOverview, ImageWithAnnotation
from services.overview_service import OverviewService
from utils.database_init import AsyncDatabaseInitializer


def format_overview(overview: DatasetOverview) -> List[str]:
    """Return the overview as printable lines, with rates shown as percentages."""
    return [
        f"Images:        {overview.total_images}",
        f"Processed:     {overview.processed_images} ({overview.processing_completion_rate:.1%})",
        f"Pending:       {overview.pending_images}",
        f"Annotated:     {overview.annotated_images}",
        f"Skipped:       {overview.skipped_images}",
        f"Manual review: {overview.manual_review_images}",
        f"Avg. confidence: {overview.average_confidence:.3f}",
    ]


def format_image_line(view: ImageWithAnnotation) -> str:
    """Return `id filename status [score level]` for one image."""
    image = view.image
    if view.is_pending:
        return f"{image.id:>5}  {image.filename}  pending"
    result = view.annotation_result
    return (
        f"{image.id:>5}  {image.filename}  {result.status.value}"
        f"  score={result.confidence_score:.3f} level={result.confidence_level.value}"
    )


async def main() -> None:
    """Ensure DB exists and print the overview and every image status."""
    initializer = AsyncDatabaseInitializer()
    image_dal = ImageDAL(initializer)
    overview = await OverviewService(image_dal, AnnotationDAL(initializer)).get_overview()

    for line in format_overview(overview):
        print(line)
    print()
    for view in await image_dal.list_images_with_annotations():
        print(format_image_line(view))


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
