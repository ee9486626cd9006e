import logging
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.errors import VerificationError
from app.models.user import User

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "User with this email or phone already exists"


class UserStore:
    """Persistence of user identities (email/phone + password hash)"""

    @staticmethod
    def get(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def find_by_identifier(db: Session, identifier: str) -> Optional[User]:
        """Find a user whose email OR phone equals the identifier"""
        return db.query(User).filter(
            or_(User.email == identifier, User.phone == identifier)
        ).first()

    @staticmethod
    def exists(db: Session, email: Optional[str], phone: Optional[str]) -> bool:
        """Check whether any of the given contact values is already taken"""
        conditions = []
        if email:
            conditions.append(User.email == email)
        if phone:
            conditions.append(User.phone == phone)
        if not conditions:
            return False
        return db.query(User.id).filter(or_(*conditions)).first() is not None

    @staticmethod
    def create(db: Session, email: Optional[str], phone: Optional[str], hashed_password: str) -> User:
        """
        Insert a new user.

        The unique constraints on email/phone are the final word on duplicates:
        two concurrent registrations can both pass exists(), but only one insert
        commits - the other surfaces here as a VerificationError.
        """
        user = User(email=email, phone=phone, hashed_password=hashed_password)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Rejected duplicate registration at the database constraint")
            raise VerificationError(DUPLICATE_USER_MESSAGE)
        db.refresh(user)
        return user


user_store = UserStore()
