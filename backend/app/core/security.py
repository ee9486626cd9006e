import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from app.core.config import Settings, settings

# CryptContext handles password hashing using bcrypt
# bcrypt is slow by design to prevent brute-force attacks
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    # bcrypt generates a salt and embeds it in the hash
    return pwd_context.hash(password)


class InvalidTokenError(Exception):
    """Token signature, expiry, or claims failed verification"""


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    # exp claim of the refresh token, persisted next to the session row
    refresh_expires_at: datetime


class TokenCodec:
    """
    Signs and verifies access and refresh tokens.

    Both kinds are JWTs binding the user id ('sub') to an expiry ('exp').
    Each kind has its own signing key and carries a 'type' claim, so a
    refresh token never passes as an access token or the other way round.
    The codec holds only configuration - no state, no I/O.
    """

    def __init__(self, config: Settings):
        self._algorithm = config.ALGORITHM
        self._secrets = {
            TokenType.ACCESS: config.JWT_ACCESS_SECRET,
            TokenType.REFRESH: config.JWT_REFRESH_SECRET,
        }
        self._lifetimes = {
            TokenType.ACCESS: timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
            TokenType.REFRESH: timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
        }

    def create_token(self, user_id: str, token_type: TokenType, expires_delta: timedelta | None = None) -> str:
        """Sign a single token of the given kind, optionally with a custom lifetime"""
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = self._lifetimes[token_type]
        return self._encode(user_id, token_type, now, now + expires_delta)

    def issue(self, user_id: str) -> TokenPair:
        """Mint a fresh access + refresh token pair for a user"""
        now = datetime.now(timezone.utc)
        # exp is stored as whole seconds, truncate so the persisted value matches the claim
        refresh_expires_at = (now + self._lifetimes[TokenType.REFRESH]).replace(microsecond=0)
        return TokenPair(
            access_token=self._encode(
                user_id, TokenType.ACCESS, now, now + self._lifetimes[TokenType.ACCESS]),
            refresh_token=self._encode(
                user_id, TokenType.REFRESH, now, refresh_expires_at),
            refresh_expires_at=refresh_expires_at,
        )

    def _encode(self, user_id: str, token_type: TokenType, issued_at: datetime, expires_at: datetime) -> str:
        to_encode = {
            "sub": str(user_id),
            "type": token_type.value,
            "iat": issued_at,
            "exp": expires_at,
            # Unique id keeps two tokens minted in the same second distinct
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(to_encode, self._secrets[token_type], algorithm=self._algorithm)

    def verify_access(self, token: str) -> str:
        """Return the user id of a valid access token"""
        return self._decode(token, TokenType.ACCESS)["sub"]

    def verify_refresh(self, token: str) -> str:
        """Return the user id of a valid refresh token"""
        return self._decode(token, TokenType.REFRESH)["sub"]

    def _decode(self, token: str, token_type: TokenType) -> dict:
        if not token:
            raise InvalidTokenError("Token is empty")
        try:
            # Signature and 'exp' are checked by jose
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise InvalidTokenError("Token expired") from exc
        except JWTError as exc:
            raise InvalidTokenError("Invalid token") from exc

        if payload.get("type") != token_type.value:
            raise InvalidTokenError("Wrong token type")
        if not payload.get("sub"):
            raise InvalidTokenError("Token has no subject")
        return payload


token_codec = TokenCodec(settings)
