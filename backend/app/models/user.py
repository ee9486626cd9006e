import uuid
from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from app.core.database import Base


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class User(Base):
    """
    User model representing registered accounts.

    A user signs in with either an email or a phone number, so both are
    optional but at least one must be present. Each is unique when set.
    Passwords are stored as bcrypt hashes (never plaintext).
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL",
            name="ck_users_email_or_phone",
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid_str)
    # Email and phone are unique and indexed for fast lookups during login
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(15), unique=True, index=True, nullable=True)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
