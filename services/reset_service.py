"""Clear processing state so every image is pending again."""

import logging

from dal.annotation_dal import AnnotationDAL

LOGGER = logging.getLogger(__name__)


class ResetService:
    """Delete all ANNOTATION_RESULT rows; IMAGE rows are left untouched."""

    def __init__(self, annotation_dal: AnnotationDAL) -> None:
        self._annotations = annotation_dal

    async def reset_all(self) -> int:
        """Delete every annotation result and return the count removed."""
        removed = await self._annotations.delete_all_results()
        LOGGER.info("Reset processing state: removed %d annotation result(s)", removed)
        return removed
