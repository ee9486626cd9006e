import re
from typing import Optional
from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from app.core.database import get_db
from app.api.dependencies import (
    get_auth_service,
    get_current_user_id,
    get_device_info,
    get_session_token,
)
from app.services.auth_service import AuthService

router = APIRouter(tags=["auth"])

MIN_PASSWORD_LENGTH = 6
# Optional leading '+', digits only, 10-15 characters in total
PHONE_PATTERN = re.compile(r"^\+?\d{9,15}$")


def _is_phone(value: str) -> bool:
    return bool(PHONE_PATTERN.match(value)) and 10 <= len(value) <= 15


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return value


class SignUpRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _is_phone(value):
            raise ValueError("Invalid phone number format")
        return value

    @model_validator(mode="after")
    def require_contact(self):
        if not self.email and not self.phone:
            raise ValueError("Either email or phone is required")
        return self


class SignInRequest(BaseModel):
    # Clients send 'id'; 'identifier' is accepted as well
    identifier: str = Field(validation_alias=AliasChoices("id", "identifier"))
    password: str
    device_info: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("deviceInfo", "device_info"))

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        if _is_phone(value):
            return value
        # Same checks and normalization EmailStr applies at sign-up
        try:
            return validate_email(value, check_deliverability=False).normalized
        except EmailNotValidError:
            raise ValueError("ID must be a valid email or phone number")

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(validation_alias=AliasChoices("refreshToken", "refresh_token"))
    device_info: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("deviceInfo", "device_info"))


class TokenPairResponse(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")

    model_config = ConfigDict(from_attributes=True)


class UserInfoResponse(BaseModel):
    userId: str


class MessageResponse(BaseModel):
    message: str


@router.post("/signup", response_model=TokenPairResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    payload: SignUpRequest,
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """Register a new user and return their first token pair"""
    return await service.register(
        db, password=payload.password, email=payload.email, phone=payload.phone
    )


@router.post("/signin", response_model=TokenPairResponse)
async def sign_in(
    payload: SignInRequest,
    user_agent_device: str = Depends(get_device_info),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """Sign in with email or phone and password"""
    return await service.login(
        db,
        identifier=payload.identifier,
        password=payload.password,
        device_info=payload.device_info or user_agent_device,
    )


@router.post("/signin/new_token", response_model=TokenPairResponse)
async def sign_in_new_token(
    payload: RefreshRequest,
    user_agent_device: str = Depends(get_device_info),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """Rotate a refresh token into a new token pair"""
    return await service.refresh(
        db,
        refresh_token=payload.refresh_token,
        device_info=payload.device_info or user_agent_device,
    )


@router.get("/info", response_model=UserInfoResponse)
async def get_user_info(
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    """Return the id of the user the access token belongs to"""
    return await service.get_user_info(user_id)


@router.get("/logout", response_model=MessageResponse)
async def logout(
    session_token: str = Depends(get_session_token),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """End the session whose refresh token is in the Authorization header"""
    await service.logout(db, session_token)
    return {"message": "Successfully logged out"}
