from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.entry_service import delete_entry, get_entry, list_entries, upsert_entry

router = APIRouter(prefix="/entries", tags=["entries"])


class TodoItem(BaseModel):
    id: Optional[str] = None
    text: str
    completed: bool = False


class ExpenseItem(BaseModel):
    id: Optional[str] = None
    item: str
    amount: float


class MediaItem(BaseModel):
    id: Optional[str] = None
    type: Literal["image", "video", "audio"]
    url: str = Field(min_length=1)
    name: Optional[str] = None


class EntryUpsertRequest(BaseModel):
    insight: Optional[str] = None
    myDaySummary: Optional[str] = None
    todos: list[TodoItem] = Field(default_factory=list)
    expenses: list[ExpenseItem] = Field(default_factory=list)
    media: list[MediaItem] = Field(default_factory=list)


@router.get("")
def get_entries(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"entries": list_entries(db, user.id)}


@router.get("/{date}")
def get_entry_by_date(date: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"entry": get_entry(db, user.id, date)}


@router.put("/{date}")
def save_entry(
    date: str,
    req: EntryUpsertRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the whole day: scalars plus complete todo/expense/media lists."""
    return {"entry": upsert_entry(db, user.id, date, req.model_dump())}


@router.delete("/{date}")
def remove_entry(date: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    delete_entry(db, user.id, date)
    return {"message": "Entry deleted"}
