"""Entry aggregate persistence.

An entry is one user's diary record for one date, plus its todos, expenses
and media. Every read and write here is scoped by ``user_id`` in the query
itself, so an entry owned by someone else is indistinguishable from one that
does not exist.

Saving an entry replaces its child collections wholesale: the caller sends the
complete desired lists and whatever was stored before is discarded. Two saves
racing on the same date resolve as last-writer-wins.
"""
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session, selectinload

from db.models import MEDIA_TYPES, Entry, Expense, Media, Todo, new_id, utc_now
from services.errors import ValidationError
from utils.media_utils import path_for_url, remove_media_file

logger = logging.getLogger(__name__)

_CHILD_MODELS = (Todo, Expense, Media)


# ---------------------------------------------------------------------------
# views
# ---------------------------------------------------------------------------

def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_media(m: Media) -> dict[str, Any]:
    return {"id": m.id, "type": m.type, "url": m.url, "name": m.name}


def serialize_entry(entry: Entry) -> dict[str, Any]:
    return {
        "date": entry.date,
        "insight": entry.insight or "",
        "myDaySummary": entry.my_day_summary or "",
        "todos": [{"id": t.id, "text": t.text, "completed": bool(t.completed)} for t in entry.todos],
        "expenses": [{"id": e.id, "item": e.item, "amount": e.amount} for e in entry.expenses],
        "media": [serialize_media(m) for m in entry.media],
        "lastSavedAt": _iso(entry.updated_at),
    }


def render_entry_content(view: Mapping[str, Any] | None) -> str:
    """Plain-text rendering of an entry view, used as model input."""
    if not view:
        return "No records for this day."

    lines: list[str] = []
    insight = (view.get("insight") or "").strip()
    if insight:
        lines.append(f"Thoughts: {insight}")

    todos = view.get("todos") or []
    if todos:
        done = sum(1 for t in todos if t.get("completed"))
        items = "; ".join(f"[{'x' if t.get('completed') else ' '}] {t.get('text', '')}" for t in todos)
        lines.append(f"To-dos ({done}/{len(todos)} done): {items}")

    expenses = view.get("expenses") or []
    if expenses:
        total = sum(float(e.get("amount") or 0) for e in expenses)
        items = "; ".join(f"{e.get('item', '')} {float(e.get('amount') or 0):.2f}" for e in expenses)
        lines.append(f"Expenses (total {total:.2f}): {items}")

    media = view.get("media") or []
    if media:
        counts: dict[str, int] = {}
        for m in media:
            counts[m.get("type", "file")] = counts.get(m.get("type", "file"), 0) + 1
        lines.append("Media: " + ", ".join(f"{n} {kind}" for kind, n in sorted(counts.items())))

    return "\n".join(lines) or "No records for this day."


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------

def _owned_entries(db: Session, user_id: str):
    return db.query(Entry).filter(Entry.user_id == user_id)


def _find_entry(db: Session, user_id: str, date: str) -> Entry | None:
    return _owned_entries(db, user_id).filter(Entry.date == date).first()


def find_owned_entry(db: Session, user_id: str, entry_id: str) -> Entry | None:
    return _owned_entries(db, user_id).filter(Entry.id == entry_id).first()


def list_entries(db: Session, user_id: str) -> dict[str, dict[str, Any]]:
    """All of a user's entries keyed by date, newest date first."""
    entries = (
        _owned_entries(db, user_id)
        .options(
            selectinload(Entry.todos),
            selectinload(Entry.expenses),
            selectinload(Entry.media),
        )
        .order_by(Entry.date.desc())
        .all()
    )
    return {entry.date: serialize_entry(entry) for entry in entries}


def get_entry(db: Session, user_id: str, date: str) -> dict[str, Any] | None:
    """The entry view for ``date``, or None when nothing has been written yet."""
    entry = _find_entry(db, user_id, date)
    if entry is None:
        return None
    return serialize_entry(entry)


# ---------------------------------------------------------------------------
# writes
# ---------------------------------------------------------------------------

def _items(payload: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, Mapping) for v in value):
        raise ValidationError(f"`{key}` must be a list of objects")
    return value


def _build_children(payload: Mapping[str, Any]) -> list[Todo | Expense | Media]:
    """Unattached child rows in submission order; entry_id is set by the caller."""
    rows: list[Todo | Expense | Media] = []
    for i, t in enumerate(_items(payload, "todos")):
        rows.append(Todo(
            id=t.get("id") or new_id(),
            text=str(t.get("text") or ""),
            completed=bool(t.get("completed")),
            position=i,
        ))
    for i, e in enumerate(_items(payload, "expenses")):
        try:
            amount = float(e.get("amount") or 0)
        except (TypeError, ValueError):
            raise ValidationError("Expense amount must be a number")
        rows.append(Expense(
            id=e.get("id") or new_id(),
            item=str(e.get("item") or ""),
            amount=amount,
            position=i,
        ))
    for i, m in enumerate(_items(payload, "media")):
        if m.get("type") not in MEDIA_TYPES or not m.get("url"):
            raise ValidationError("Media items need a type of image, video or audio and a url")
        rows.append(Media(
            id=m.get("id") or new_id(),
            type=m["type"],
            url=str(m["url"]),
            name=m.get("name") or "",
            position=i,
        ))
    return rows


def _media_urls(db: Session, entry_id: str) -> set[str]:
    return {url for (url,) in db.query(Media.url).filter(Media.entry_id == entry_id)}


def _clear_children(db: Session, entry: Entry) -> None:
    for model in _CHILD_MODELS:
        db.query(model).filter(model.entry_id == entry.id).delete(synchronize_session="fetch")
    db.expire(entry, ["todos", "expenses", "media"])


def _check_upload_urls(db: Session, user_id: str, children: list) -> None:
    """Stored-upload URLs must already belong to one of the user's own media rows."""
    local = {row.url for row in children if isinstance(row, Media) and path_for_url(row.url) is not None}
    if not local:
        return
    owned = {
        url
        for (url,) in db.query(Media.url)
        .join(Entry, Media.entry_id == Entry.id)
        .filter(Entry.user_id == user_id, Media.url.in_(local))
    }
    if local - owned:
        raise ValidationError("Media url does not refer to one of your uploads")


def remove_unreferenced_files(db: Session, urls) -> None:
    """Delete upload files that no media row points at any more. Call after commit."""
    for url in urls:
        if db.query(Media.id).filter(Media.url == url).first() is None:
            remove_media_file(url)


def ensure_entry(db: Session, user_id: str, date: str) -> Entry:
    """Get or create the entry for ``date``. Flushes but does not commit."""
    entry = _find_entry(db, user_id, date)
    if entry is None:
        entry = Entry(id=new_id(), user_id=user_id, date=date, insight="", my_day_summary="")
        db.add(entry)
        db.flush()
    return entry


def upsert_entry(
    db: Session,
    user_id: str,
    date: str,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Create or overwrite the entry for ``date`` in one transaction.

    Scalars are overwritten (missing values become ""), and todos, expenses and
    media are replaced by exactly the supplied lists. Children without an id
    get a generated one. Nothing is written if any step fails.
    """
    if not date:
        raise ValidationError("Date is required")
    payload = payload or {}
    insight = payload.get("insight") or ""
    summary = payload.get("myDaySummary") or ""
    children = _build_children(payload)
    _check_upload_urls(db, user_id, children)

    previous_urls: set[str] = set()
    try:
        entry = _find_entry(db, user_id, date)
        if entry is None:
            entry = Entry(id=new_id(), user_id=user_id, date=date, insight=insight, my_day_summary=summary)
            db.add(entry)
            db.flush()
        else:
            entry.insight = insight
            entry.my_day_summary = summary
            entry.updated_at = utc_now()
            previous_urls = _media_urls(db, entry.id)

        _clear_children(db, entry)
        for row in children:
            row.entry_id = entry.id
        db.add_all(children)
        db.commit()
    except Exception:
        db.rollback()
        raise

    view = serialize_entry(entry)
    remove_unreferenced_files(db, previous_urls - {m["url"] for m in view["media"]})
    return view


def delete_entry(db: Session, user_id: str, date: str) -> bool:
    """Delete the entry for ``date`` and its children. Missing entries are a no-op."""
    try:
        entry = _find_entry(db, user_id, date)
        if entry is None:
            return False
        urls = _media_urls(db, entry.id)
        _clear_children(db, entry)
        db.delete(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise

    remove_unreferenced_files(db, urls)
    logger.info("Deleted entry %s for user %s", date, user_id)
    return True


def set_day_summary(db: Session, user_id: str, date: str, summary: str) -> dict[str, Any]:
    """Store a generated summary on the entry, creating the entry if needed."""
    try:
        entry = ensure_entry(db, user_id, date)
        entry.my_day_summary = summary
        entry.updated_at = utc_now()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return serialize_entry(entry)
