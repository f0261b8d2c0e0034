import os
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from services.errors import StoreError

LOGGER = logging.getLogger(__name__)

IMAGE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS IMAGE (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    storage_path TEXT NOT NULL,
    file_size INTEGER NOT NULL CHECK (file_size > 0),
    width INTEGER NOT NULL CHECK (width > 0),
    height INTEGER NOT NULL CHECK (height > 0),
    metadata_json TEXT,
    upload_date INTEGER NOT NULL,
    created_at INTEGER NOT NULL
)
"""

ANNOTATION_RESULT_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS ANNOTATION_RESULT (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    image_id INTEGER NOT NULL UNIQUE REFERENCES IMAGE(id) ON DELETE CASCADE,
    status TEXT NOT NULL CHECK (status IN ('annotated', 'skipped', 'manual_review')),
    confidence_score REAL NOT NULL CHECK (confidence_score >= 0 AND confidence_score <= 1),
    confidence_level TEXT NOT NULL CHECK (confidence_level IN ('low', 'medium', 'high')),
    decision_reason TEXT NOT NULL,
    annotations_json TEXT,
    processing_time_ms INTEGER NOT NULL CHECK (processing_time_ms >= 0),
    processed_at INTEGER NOT NULL,
    created_at INTEGER NOT NULL
)
"""


class AsyncDatabaseInitializer:
    """
    Manage an async SQLite database stored at <db_dir>/app.db.

    - `db_dir` defaults to the DATABASE_DIR environment variable. A RuntimeError
      is raised if neither is set or the path is not a usable directory.
    - On the first call to `ensure_database()` for a given instance:
        * If `reset_on_startup` is true, any existing database file is deleted.
        * The IMAGE and ANNOTATION_RESULT tables are created if missing.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Optional[Path | str] = None, reset_on_startup: bool = False) -> None:
        raw_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")

        if raw_dir is None or not raw_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        resolved = Path(raw_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if resolved.exists() and not resolved.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={raw_dir!r} points to a file, not a directory "
                f"({resolved}). Please set DATABASE_DIR to a directory path."
            )

        try:
            resolved.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {resolved}"
            ) from exc

        self.db_dir = resolved
        self.db_path = self.db_dir / "app.db"
        self.reset_on_startup = reset_on_startup

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database exists at `self.db_path` with the current schema.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        if self.reset_on_startup and self.db_path.exists():
            try:
                self.db_path.unlink()
            except Exception as exc:
                raise RuntimeError(
                    f"Failed to delete existing database at {self.db_path}"
                ) from exc
            LOGGER.info("Deleted existing database at %s", self.db_path)

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(IMAGE_TABLE_SQL)
                    await db.execute(ANNOTATION_RESULT_TABLE_SQL)
                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_annotation_result_status ON ANNOTATION_RESULT(status)"
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        Foreign keys are enabled on every connection so image deletes cascade.

        Raises:
            StoreError: If opening the database or any statement run on the
                connection fails with an `aiosqlite.Error`.
        """
        try:
            await self.ensure_database()
            conn = await aiosqlite.connect(self.db_path)
        except aiosqlite.Error as exc:
            LOGGER.error("Cannot open database at %s: %s", self.db_path, exc)
            raise StoreError(f"Cannot open database at {self.db_path}: {exc}") from exc

        try:
            await conn.execute("PRAGMA foreign_keys=ON")
            yield conn
        except aiosqlite.Error as exc:
            LOGGER.error("Database operation failed: %s", exc)
            raise StoreError(f"Database operation failed: {exc}") from exc
        finally:
            await conn.close()
