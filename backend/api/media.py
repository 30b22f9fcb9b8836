from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.media_service import delete_media, upload_media

router = APIRouter(prefix="/upload", tags=["media"])


@router.post("")
async def upload_file(
    file: UploadFile = File(...),
    entryId: Optional[str] = Form(default=None),
    entryDate: Optional[str] = Form(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upload an image, video or audio file to an entry (by id or by date)."""
    contents = await file.read()
    media = upload_media(
        db,
        user.id,
        contents,
        file.filename,
        file.content_type,
        entry_date=entryDate,
        entry_id=entryId,
    )
    return {"media": media}


@router.delete("/{media_id}")
def delete_file(media_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    delete_media(db, user.id, media_id)
    return {"message": "File deleted"}
