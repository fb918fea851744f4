"""Local file storage for attendee identity documents.

Stored files are addressed by an opaque relative path; the path, not the file,
is what an application records.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from app.core.config import settings

logger = logging.getLogger(__name__)


class DocumentStorage:
    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.upload_dir)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, relative_path: str) -> Path:
        path = (self._root / relative_path).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Path escapes storage root: {relative_path}")
        return path

    async def save(self, application_id: str, filename: str, content: bytes) -> str:
        """Write *content* under a fresh name and return its relative path."""
        suffix = Path(filename or "").suffix.lower()
        relative = f"{application_id}/{uuid.uuid4().hex}{suffix}"
        target = self._root / relative

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await asyncio.to_thread(_write)
        return relative

    async def delete(self, relative_path: str) -> None:
        """Best-effort removal, used to roll back writes of a failed update."""
        try:
            path = self._resolve(relative_path)
            await asyncio.to_thread(path.unlink, True)
        except (OSError, ValueError) as exc:
            logger.warning("Could not remove stored document %s: %s", relative_path, exc)

    def exists(self, relative_path: str) -> bool:
        try:
            return self._resolve(relative_path).is_file()
        except ValueError:
            return False


def get_storage() -> DocumentStorage:
    """FastAPI dependency returning storage rooted at ``UPLOAD_DIR``."""
    return DocumentStorage()
