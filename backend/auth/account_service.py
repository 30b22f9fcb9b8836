"""Credential store operations: registration and password login.

Emails are matched exactly as typed (no case folding or trimming beyond
rejecting blank input), so ``A@x.com`` and ``a@x.com`` are different accounts.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.utils import create_token, hash_password, verify_password
from db.models import User
from services.errors import DuplicateEmailError, InvalidCredentialsError, ValidationError

logger = logging.getLogger(__name__)


def default_display_name(email: str) -> str:
    return email.split("@")[0]


def _require_credentials(email: str | None, password: str | None) -> None:
    if not (email or "").strip() or not password:
        raise ValidationError("Email and password are required")


def register_user(db: Session, email: str, password: str, name: str | None = None) -> tuple[User, str]:
    _require_credentials(email, password)

    if db.query(User.id).filter(User.email == email).first():
        raise DuplicateEmailError()

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=(name or "").strip() or default_display_name(email),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email.
        db.rollback()
        raise DuplicateEmailError()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user, create_token(user.id, email=user.email)


def authenticate_user(db: Session, email: str, password: str) -> tuple[User, str]:
    _require_credentials(email, password)

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    return user, create_token(user.id, email=user.email)
