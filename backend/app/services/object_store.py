"""
Object store for thread documents. The default implementation writes to UPLOAD_DIR on
disk, which app.main serves at /uploads/; swap in another ObjectStore for S3 and friends.
"""
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class StoredObject:
    path: str  # retrievable path, e.g. /uploads/funding_request/<id>/<uuid>.pdf
    mime_type: str


class ObjectStore:
    def save(self, file: IncomingFile, folder: str) -> StoredObject:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    URL_PREFIX = "/uploads/"

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIR)

    def validate(self, file: IncomingFile) -> str:
        """Check name, extension and size; returns the normalised extension."""
        if not file.filename:
            raise ValidationError("No file uploaded")
        ext = Path(file.filename).suffix.lower()
        if ext not in settings.DOCUMENT_EXTENSIONS:
            raise ValidationError(f"File must be one of: {', '.join(settings.DOCUMENT_EXTENSIONS)}")
        if not file.content:
            raise ValidationError("Uploaded file is empty")
        if len(file.content) > settings.DOCUMENT_MAX_SIZE_BYTES:
            raise ValidationError(
                f"File must be under {settings.DOCUMENT_MAX_SIZE_BYTES // (1024 * 1024)}MB"
            )
        return ext

    def save(self, file: IncomingFile, folder: str) -> StoredObject:
        ext = self.validate(file)
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}{ext}"
        with open(target_dir / name, "wb") as f:
            f.write(file.content)
        mime_type = file.content_type or mimetypes.guess_type(file.filename)[0] or "application/octet-stream"
        return StoredObject(path=f"{self.URL_PREFIX}{folder}/{name}", mime_type=mime_type)

    def delete(self, path: str) -> None:
        """Remove a stored file. path is like /uploads/<folder>/<name>."""
        if not path or not path.startswith(self.URL_PREFIX) or ".." in path:
            return
        target = self.root / path[len(self.URL_PREFIX):]
        if target.exists():
            try:
                target.unlink()
            except OSError:
                logger.warning("Could not remove stored object %s", target)


def get_object_store() -> ObjectStore:
    return LocalObjectStore()
