from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.export_service import export_user_data

router = APIRouter(prefix="/export", tags=["export"])


@router.get("")
def export_data(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All of the caller's entries as a single JSON document."""
    return export_user_data(db, user)
