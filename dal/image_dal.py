"""Async Data Access Layer for the IMAGE table.

Provides ImageDAL class with async CRUD operations compatible with
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Sequence, Set

from dal.annotation_dal import AnnotationDAL
from models.annotation_record import ImageWithAnnotation
from models.image_record import ImageRecord
from utils.database_init import AsyncDatabaseInitializer


def _load_json(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    return json.loads(raw) if raw else None


class ImageDAL:
    """Data access layer for IMAGE records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "filename",
        "storage_path",
        "file_size",
        "width",
        "height",
        "metadata_json",
        "upload_date",
        "created_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])
    _JOINED_COLUMNS = ", ".join(f"i.{c}" for c in _COLUMNS) + ", " + ", ".join(
        f"a.{c}" for c in AnnotationDAL.COLUMNS
    )
    _ID_CHUNK_SIZE = 500

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_image(self, record: ImageRecord) -> ImageRecord:
        """Insert a new IMAGE row and return it with `id` and timestamps set.

        Args:
            record: ImageRecord with `id=None` and fields to insert.
        """
        now = int(time.time())
        upload_date = record.upload_date or now
        metadata_json = json.dumps(record.metadata) if record.metadata is not None else None

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO IMAGE ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.filename,
                    record.storage_path,
                    record.file_size,
                    record.width,
                    record.height,
                    metadata_json,
                    upload_date,
                    now,
                ),
            )
            await conn.commit()
            image_id = cur.lastrowid

        return ImageRecord(
            id=image_id,
            filename=record.filename,
            storage_path=record.storage_path,
            file_size=record.file_size,
            width=record.width,
            height=record.height,
            metadata=record.metadata,
            upload_date=upload_date,
            created_at=now,
        )

    async def get_image_by_id(self, image_id: int) -> Optional[ImageRecord]:
        """Return ImageRecord for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_images(self, limit: Optional[int] = None, offset: int = 0) -> List[ImageRecord]:
        """List IMAGE rows ordered by id, with optional paging.

        Args:
            limit: Maximum number of rows to return; all rows when None.
            offset: Rows to skip.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE ORDER BY id LIMIT ? OFFSET ?",
                (-1 if limit is None else limit, offset),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def count_images(self) -> int:
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM IMAGE")
            row = await cur.fetchone()
            return int(row[0]) if row else 0

    async def existing_ids(self, image_ids: Sequence[int]) -> Set[int]:
        """Return the subset of `image_ids` that exist in IMAGE.

        Ids are looked up in chunks of `_ID_CHUNK_SIZE` to stay under SQLite's
        bound-parameter limit.
        """
        unique_ids = sorted(set(int(i) for i in image_ids))
        found: Set[int] = set()
        if not unique_ids:
            return found
        async with self._db.connection() as conn:
            for start in range(0, len(unique_ids), self._ID_CHUNK_SIZE):
                chunk = unique_ids[start : start + self._ID_CHUNK_SIZE]
                placeholders = ", ".join("?" for _ in chunk)
                cur = await conn.execute(
                    f"SELECT id FROM IMAGE WHERE id IN ({placeholders})",
                    tuple(chunk),
                )
                found.update(int(r[0]) for r in await cur.fetchall())
        return found

    async def list_pending_image_ids(self) -> List[int]:
        """Return ids of images without an annotation result, ordered by id."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                """
                SELECT i.id FROM IMAGE i
                LEFT JOIN ANNOTATION_RESULT a ON a.image_id = i.id
                WHERE a.id IS NULL
                ORDER BY i.id
                """
            )
            rows = await cur.fetchall()
            return [int(r[0]) for r in rows]

    async def list_images_with_annotations(self) -> List[ImageWithAnnotation]:
        """Return every image joined with its annotation result (if any)."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"""
                SELECT {self._JOINED_COLUMNS} FROM IMAGE i
                LEFT JOIN ANNOTATION_RESULT a ON a.image_id = i.id
                ORDER BY i.id
                """
            )
            rows = await cur.fetchall()
            return [self._joined_row_to_view(r) for r in rows]

    async def get_image_with_annotation(self, image_id: int) -> Optional[ImageWithAnnotation]:
        """Return the image and its annotation result, or None if the image is missing."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"""
                SELECT {self._JOINED_COLUMNS} FROM IMAGE i
                LEFT JOIN ANNOTATION_RESULT a ON a.image_id = i.id
                WHERE i.id = ?
                """,
                (image_id,),
            )
            row = await cur.fetchone()
            return self._joined_row_to_view(row) if row else None

    async def delete_image(self, image_id: int) -> bool:
        """Delete IMAGE row by id (its annotation result cascades). Returns True if deleted."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM IMAGE WHERE id = ?", (image_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_record(row: Sequence[Any]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        return ImageRecord(
            id=row[0],
            filename=row[1],
            storage_path=row[2],
            file_size=row[3],
            width=row[4],
            height=row[5],
            metadata=_load_json(row[6]),
            upload_date=row[7],
            created_at=row[8],
        )

    @classmethod
    def _joined_row_to_view(cls, row: Sequence[Any]) -> ImageWithAnnotation:
        split = len(cls._COLUMNS)
        image = cls._row_to_record(row[:split])
        annotation_row = row[split:]
        annotation = AnnotationDAL.row_to_record(annotation_row) if annotation_row[0] is not None else None
        return ImageWithAnnotation(image=image, annotation_result=annotation)
