from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.user import _uuid_str


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserSession(Base):
    """
    One active login: a refresh token bound to a user and a device.

    Rows are hard-deleted on logout and on rotation. A row carries two
    independent expiry bounds - the store's own (expires_at) and the exp
    claim of the refresh token it holds (token_expires_at) - and is only
    usable while neither has passed.
    """
    __tablename__ = "user_sessions"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token = Column(String, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    token_expires_at = Column(DateTime(timezone=True), nullable=False)
    device_info = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # backref gives user.sessions (all devices the user is signed in on)
    user = relationship("User", backref="sessions")

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= _as_utc(self.expires_at) or now >= _as_utc(self.token_expires_at)
