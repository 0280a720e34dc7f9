from typing import Generator, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.errors import ValidationError
from app.services.object_store import IncomingFile, ObjectStore, get_object_store


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_store() -> ObjectStore:
    return get_object_store()


def incoming_file(upload: Optional[UploadFile]) -> IncomingFile:
    """Read a multipart upload into memory for the object store, refusing oversized files."""
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")
    limit = settings.DOCUMENT_MAX_SIZE_BYTES
    content = upload.file.read(limit + 1)
    if len(content) > limit:
        raise ValidationError(f"File must be under {limit // (1024 * 1024)}MB")
    return IncomingFile(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type,
    )
