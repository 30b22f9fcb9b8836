import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from db.models import Entry, Media, new_id
from services.entry_service import ensure_entry, find_owned_entry, remove_unreferenced_files, serialize_media
from services.errors import (
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from utils.media_utils import (
    classify_media,
    media_url,
    needs_transcode,
    remove_media_file,
    save_media_file,
    transcode_to_jpeg,
)

logger = logging.getLogger(__name__)


def _display_name(filename: str | None) -> str:
    return (filename or "").replace("\\", "/").rsplit("/", 1)[-1]


def _resolve_entry(db: Session, user_id: str, entry_id: str | None, entry_date: str | None) -> Entry:
    if entry_id:
        entry = find_owned_entry(db, user_id, entry_id)
        if entry is None:
            raise NotFoundError("Entry not found")
        return entry
    if entry_date:
        return ensure_entry(db, user_id, entry_date)
    raise ValidationError("entryId or entryDate is required")


def upload_media(
    db: Session,
    user_id: str,
    data: bytes,
    filename: str | None,
    content_type: str | None = None,
    *,
    entry_date: str | None = None,
    entry_id: str | None = None,
) -> dict[str, Any]:
    """Store an uploaded file and attach it to the user's entry.

    Uploading against a date with no entry yet creates a blank entry for it.
    """
    kind = classify_media(filename, content_type)
    if not data:
        raise ValidationError("No file uploaded")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB."
        )
    if not entry_id and not entry_date:
        raise ValidationError("entryId or entryDate is required")

    filepath = save_media_file(data, filename)
    if kind == "image" and needs_transcode(filepath):
        filepath = transcode_to_jpeg(filepath)
    url = media_url(filepath.name)

    try:
        entry = _resolve_entry(db, user_id, entry_id, entry_date)
        next_position = (
            db.query(func.coalesce(func.max(Media.position) + 1, 0))
            .filter(Media.entry_id == entry.id)
            .scalar()
        )
        media = Media(
            id=new_id(),
            entry_id=entry.id,
            type=kind,
            url=url,
            name=_display_name(filename),
            position=next_position,
        )
        db.add(media)
        db.commit()
    except Exception:
        db.rollback()
        remove_media_file(url)
        raise

    return serialize_media(media)


def delete_media(db: Session, user_id: str, media_id: str) -> None:
    """Delete one media item, then its file unless another media row still uses it."""
    row = (
        db.query(Media, Entry.user_id)
        .join(Entry, Media.entry_id == Entry.id)
        .filter(Media.id == media_id)
        .first()
    )
    if row is None:
        raise NotFoundError("File not found")
    media, owner_id = row
    if owner_id != user_id:
        raise ForbiddenError()

    url = media.url
    try:
        db.delete(media)
        db.commit()
    except Exception:
        db.rollback()
        raise

    try:
        remove_unreferenced_files(db, [url])
    except Exception:
        logger.exception(f"Failed to remove file for media {media_id}")
