"""Async Data Access Layer for the ANNOTATION_RESULT table."""

from __future__ import annotations

import json
import time
from typing import Any, List, Optional, Sequence

import aiosqlite

from models.annotation_record import AnnotationRecord, AnnotationStatus, ConfidenceLevel
from services.errors import AnnotationConflictError, ImageNotFoundError
from utils.database_init import AsyncDatabaseInitializer


class AnnotationDAL:
    """Data access layer for ANNOTATION_RESULT records.

    At most one row exists per image (`UNIQUE(image_id)`); writes go through
    `save_result`, which either replaces the existing row or refuses it.
    """

    COLUMNS = (
        "id",
        "image_id",
        "status",
        "confidence_score",
        "confidence_level",
        "decision_reason",
        "annotations_json",
        "processing_time_ms",
        "processed_at",
        "created_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(COLUMNS), ", ".join(COLUMNS[1:])
    _UPSERT_CLAUSE = (
        " ON CONFLICT(image_id) DO UPDATE SET "
        + ", ".join(f"{c} = excluded.{c}" for c in COLUMNS[2:9])
    )

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def save_result(self, record: AnnotationRecord, replace_existing: bool = True) -> AnnotationRecord:
        """Persist an annotation result for `record.image_id` and return the stored row.

        Args:
            record: AnnotationRecord with `id=None`.
            replace_existing: Overwrite the image's current result atomically when
                True; otherwise an existing result is a conflict.

        Raises:
            ImageNotFoundError: If the image no longer exists.
            AnnotationConflictError: If the insert violates another table
                constraint (existing result under `replace_existing=False`).
        """
        now = int(time.time())
        processed_at = record.processed_at or now
        annotations_json = json.dumps(record.annotations) if record.annotations is not None else None
        sql = f"INSERT INTO ANNOTATION_RESULT ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
        if replace_existing:
            sql += self._UPSERT_CLAUSE

        async with self._db.connection() as conn:
            try:
                await conn.execute(
                    sql,
                    (
                        record.image_id,
                        record.status.value,
                        float(record.confidence_score),
                        record.confidence_level.value,
                        record.decision_reason,
                        annotations_json,
                        int(record.processing_time_ms),
                        processed_at,
                        now,
                    ),
                )
                await conn.commit()
            except aiosqlite.IntegrityError as exc:
                await conn.rollback()
                cur = await conn.execute("SELECT 1 FROM IMAGE WHERE id = ?", (record.image_id,))
                if await cur.fetchone() is None:
                    raise ImageNotFoundError(record.image_id) from exc
                raise AnnotationConflictError(record.image_id, str(exc)) from exc

            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM ANNOTATION_RESULT WHERE image_id = ?",
                (record.image_id,),
            )
            row = await cur.fetchone()
            return self.row_to_record(row)

    async def get_result_by_image_id(self, image_id: int) -> Optional[AnnotationRecord]:
        """Return the annotation result for `image_id`, or None if the image is pending."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM ANNOTATION_RESULT WHERE image_id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self.row_to_record(row) if row else None

    async def list_results(self) -> List[AnnotationRecord]:
        async with self._db.connection() as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM ANNOTATION_RESULT ORDER BY id")
            rows = await cur.fetchall()
            return [self.row_to_record(r) for r in rows]

    async def delete_all_results(self) -> int:
        """Delete every ANNOTATION_RESULT row and return the count removed."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM ANNOTATION_RESULT")
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            deleted = await cur.fetchone()
            return int(deleted[0]) if deleted and deleted[0] is not None else 0

    @staticmethod
    def row_to_record(row: Sequence[Any]) -> AnnotationRecord:
        """Convert a DB row tuple into an AnnotationRecord."""
        return AnnotationRecord(
            id=row[0],
            image_id=row[1],
            status=AnnotationStatus(row[2]),
            confidence_score=float(row[3]),
            confidence_level=ConfidenceLevel(row[4]),
            decision_reason=row[5],
            annotations=json.loads(row[6]) if row[6] else None,
            processing_time_ms=row[7],
            processed_at=row[8],
            created_at=row[9],
        )
