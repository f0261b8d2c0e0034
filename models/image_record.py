from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ImageRecord:
    """In-memory representation of a row in the IMAGE table.

    Attributes:
        id: Primary key (None for new records).
        filename: Original filename of the image.
        storage_path: Location of the image file on disk or in object storage.
        file_size: Size of the file in bytes.
        width: Width in pixels.
        height: Height in pixels.
        metadata: Optional free-form JSON object supplied at ingestion.
        upload_date: Unix timestamp (seconds) when the image was registered.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    id: Optional[int]
    filename: str
    storage_path: str
    file_size: int
    width: int
    height: int
    metadata: Optional[Dict[str, Any]] = None
    upload_date: Optional[int] = None
    created_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "storage_path": self.storage_path,
            "file_size": self.file_size,
            "width": self.width,
            "height": self.height,
            "metadata": self.metadata,
            "upload_date": self.upload_date,
            "created_at": self.created_at,
        }
