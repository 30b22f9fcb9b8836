import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Text, Float, Boolean, ForeignKey, Index,
    DateTime, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from db.database import Base


MEDIA_TYPES = ("image", "video", "audio")


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True, default=new_id)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    name = Column(Text)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    entries = relationship(
        "Entry",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Entry(Base):
    __tablename__ = "entries"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_entries_user_date"),
        Index("idx_entries_user_date", "user_id", "date"),
    )

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Text, nullable=False)  # opaque key, never parsed
    insight = Column(Text, nullable=False, default="")
    my_day_summary = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="entries")
    todos = relationship(
        "Todo",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Todo.position",
    )
    expenses = relationship(
        "Expense",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Expense.position",
    )
    media = relationship(
        "Media",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Media.position",
    )


class Todo(Base):
    __tablename__ = "todos"

    id = Column(Text, primary_key=True, default=new_id)
    entry_id = Column(Text, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)

    entry = relationship("Entry", back_populates="todos")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Text, primary_key=True, default=new_id)
    entry_id = Column(Text, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False, index=True)
    item = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)

    entry = relationship("Entry", back_populates="expenses")


class Media(Base):
    __tablename__ = "media"
    __table_args__ = (
        CheckConstraint("type IN ('image', 'video', 'audio')", name="ck_media_type"),
    )

    id = Column(Text, primary_key=True, default=new_id)
    entry_id = Column(Text, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    name = Column(Text)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)

    entry = relationship("Entry", back_populates="media")
