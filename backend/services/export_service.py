from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from db.models import User
from services.entry_service import list_entries


def export_user_data(db: Session, user: User) -> dict[str, Any]:
    return {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "user": {"id": user.id, "email": user.email, "name": user.name},
        "entries": list_entries(db, user.id),
    }
