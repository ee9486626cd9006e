import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy import inspect, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import Settings, settings
from app.models.session import UserSession

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Durable record of issued refresh tokens.

    Each row is one signed-in device. Revocation is a hard delete, so a
    refresh token is usable exactly as long as its row exists and has not
    expired. Nothing here deduplicates by device - signing in twice from the
    same client creates two rows.
    """

    def __init__(self, config: Settings):
        self._session_lifetime = timedelta(days=config.SESSION_EXPIRE_DAYS)

    def save(
        self,
        db: Session,
        user_id: str,
        refresh_token: str,
        token_expires_at: datetime,
        device_info: Optional[str] = None,
    ) -> UserSession:
        """Insert a session row; the store-side expiry is fixed at issuance"""
        session = UserSession(
            user_id=user_id,
            refresh_token=refresh_token,
            device_info=device_info,
            expires_at=datetime.now(timezone.utc) + self._session_lifetime,
            token_expires_at=token_expires_at,
        )
        db.add(session)
        try:
            db.commit()
        except SQLAlchemyError:
            # Leave the connection usable for the caller, then let the failure propagate
            db.rollback()
            raise
        db.refresh(session)
        return session

    def find_by_token(self, db: Session, refresh_token: str, user_id: str) -> Optional[UserSession]:
        """Exact match on (token, owner)"""
        return db.query(UserSession).filter(
            UserSession.refresh_token == refresh_token,
            UserSession.user_id == user_id,
        ).first()

    def revoke(self, db: Session, session: UserSession) -> int:
        """Delete one row by id; a row another request already removed counts as zero"""
        # Read from the identity key: a commit since the lookup expires attributes,
        # and reloading them fails once a concurrent refresh has removed the row
        session_id = inspect(session).identity[0]
        deleted = db.query(UserSession).filter(UserSession.id == session_id).delete(
            synchronize_session=False
        )
        db.commit()
        return deleted

    def revoke_all_for_token(self, db: Session, refresh_token: str, user_id: str) -> int:
        """Delete every row holding this token for this user; zero rows is fine"""
        deleted = db.query(UserSession).filter(
            UserSession.refresh_token == refresh_token,
            UserSession.user_id == user_id,
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    def purge_expired(self, db: Session, now: Optional[datetime] = None) -> int:
        """Delete rows where either expiry bound has passed"""
        now = now or datetime.now(timezone.utc)
        deleted = db.query(UserSession).filter(
            or_(UserSession.expires_at <= now, UserSession.token_expires_at <= now)
        ).delete(synchronize_session=False)
        db.commit()
        return deleted


session_store = SessionStore(settings)
