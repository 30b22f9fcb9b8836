from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ai.summary_generator import SummaryGenerator, get_summary_generator
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.entry_service import get_entry, render_entry_content, set_day_summary

router = APIRouter(prefix="/ai", tags=["ai"])


class SummaryRequest(BaseModel):
    date: str = Field(min_length=1)


class InsightRequest(BaseModel):
    date: str = Field(min_length=1)
    prompt: str = Field(min_length=1)


@router.post("/summary")
async def generate_my_day_summary(
    req: SummaryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: SummaryGenerator = Depends(get_summary_generator),
):
    """Summarize the stored entry for a date and save the summary on it."""
    user_id = user.id
    content = render_entry_content(get_entry(db, user_id, req.date))
    # End the read transaction before waiting on the provider.
    db.rollback()
    summary = await generator.summarize(content)
    set_day_summary(db, user_id, req.date, summary)
    return {"summary": summary}


@router.post("/insight")
async def generate_insight(
    req: InsightRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: SummaryGenerator = Depends(get_summary_generator),
):
    entry = get_entry(db, user.id, req.date)
    db.rollback()
    insight = await generator.reflect((entry or {}).get("insight", ""), req.prompt)
    return {"insight": insight}
