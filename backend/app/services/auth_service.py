"""
Authentication and session lifecycle.

Registration and login mint a token pair and persist the refresh half as a
session row. Refresh rotates: the presented refresh token is exchanged for a
new pair and its row is deleted, so each refresh token works once. Logout
deletes the row for the presented refresh token. Access tokens are never
looked up or revoked - they stay valid until their own expiry.
"""

import logging
from typing import Optional
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from app.core.errors import UnauthorizedError, VerificationError
from app.core.security import (
    InvalidTokenError,
    TokenCodec,
    TokenPair,
    get_password_hash,
    token_codec,
    verify_password,
)
from app.storage.session_store import SessionStore, session_store
from app.storage.user_store import DUPLICATE_USER_MESSAGE, UserStore, user_store

logger = logging.getLogger(__name__)

# One message for every credential failure so callers can't tell which part was wrong
INVALID_CREDENTIALS_MESSAGE = "Invalid email/phone or password"

# Checked against on unknown identifiers so both failure paths pay the bcrypt cost
_DUMMY_PASSWORD_HASH = get_password_hash("no-such-account")


class AuthService:
    def __init__(self, codec: TokenCodec, sessions: SessionStore, users: UserStore):
        self.codec = codec
        self.sessions = sessions
        self.users = users

    async def register(
        self,
        db: Session,
        password: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> TokenPair:
        """Create a user and sign them in on a first, device-less session"""
        if not email and not phone:
            raise VerificationError("Either email or phone is required")

        # Store calls are blocking SQLAlchemy I/O, so they run in the thread pool too
        if await run_in_threadpool(self.users.exists, db, email, phone):
            raise VerificationError(DUPLICATE_USER_MESSAGE)

        # bcrypt is CPU-bound - run it in the thread pool so other requests keep flowing
        hashed_password = await run_in_threadpool(get_password_hash, password)
        user = await run_in_threadpool(
            self.users.create, db, email=email, phone=phone, hashed_password=hashed_password
        )
        logger.info("Registered user %s", user.id)

        return await self._start_session(db, user.id, device_info="")

    async def login(self, db: Session, identifier: str, password: str, device_info: Optional[str]) -> TokenPair:
        """
        Verify credentials and open a new session for this device.

        Existing sessions on other devices are left alone.
        """
        user = await run_in_threadpool(self.users.find_by_identifier, db, identifier)
        if user is None:
            await run_in_threadpool(verify_password, password, _DUMMY_PASSWORD_HASH)
            logger.info("Login failed: unknown identifier")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        password_ok = await run_in_threadpool(verify_password, password, user.hashed_password)
        if not password_ok:
            logger.info("Login failed: bad password for user %s", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        return await self._start_session(db, user.id, device_info=device_info)

    async def refresh(self, db: Session, refresh_token: str, device_info: Optional[str]) -> TokenPair:
        """
        Exchange a refresh token for a new pair, retiring the old one.

        The new session is written before the old one is deleted. If the
        delete fails the user is left holding two valid sessions, never zero.
        Two concurrent calls with the same token can both get here before
        either delete lands; each then mints its own session.
        """
        try:
            user_id = self.codec.verify_refresh(refresh_token)
        except InvalidTokenError as exc:
            logger.info("Refresh rejected: %s", exc)
            raise UnauthorizedError("Invalid refresh token")

        current = await run_in_threadpool(self.sessions.find_by_token, db, refresh_token, user_id)
        if current is None:
            # Already rotated, logged out, or never issued
            logger.warning("Refresh rejected: no session for user %s", user_id)
            raise UnauthorizedError("Token not found or expired")

        if current.is_expired():
            logger.info("Refresh rejected: session %s expired", current.id)
            await run_in_threadpool(self.sessions.revoke, db, current)
            raise UnauthorizedError("Token not found or expired")

        tokens = await self._start_session(db, user_id, device_info=device_info)
        await run_in_threadpool(self.sessions.revoke, db, current)
        return tokens

    async def logout(self, db: Session, session_token: Optional[str]) -> int:
        """
        End the session identified by a refresh token.

        Returns how many rows were removed; zero is a normal outcome.
        """
        if not session_token:
            raise UnauthorizedError("No token provided")

        try:
            user_id = self.codec.verify_refresh(session_token)
        except InvalidTokenError:
            raise UnauthorizedError("Invalid token")

        deleted = await run_in_threadpool(self.sessions.revoke_all_for_token, db, session_token, user_id)
        logger.info("Logout for user %s removed %d session(s)", user_id, deleted)
        return deleted

    async def get_user_info(self, user_id: str) -> dict:
        # user_id was already verified from the access token upstream
        return {"userId": user_id}

    async def _start_session(self, db: Session, user_id: str, device_info: Optional[str]) -> TokenPair:
        tokens = self.codec.issue(user_id)
        await run_in_threadpool(
            self.sessions.save,
            db,
            user_id=user_id,
            refresh_token=tokens.refresh_token,
            token_expires_at=tokens.refresh_expires_at,
            device_info=device_info,
        )
        return tokens


auth_service = AuthService(token_codec, session_store, user_store)
