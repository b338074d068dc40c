"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.pagination import Pagination
from ...shared.validators import validate_email, validate_international_phone

MIN_FCM_TOKEN_LENGTH = 100


class Address(BaseModel):
    street: Optional[str] = Field(None, min_length=3, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    postalCode: Optional[str] = Field(None, pattern=r"^\d{5}$")
    country: str = "France"


class Location(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    formattedAddress: Optional[str] = Field(None, max_length=255)
    placeId: Optional[str] = Field(None, max_length=255)


class PreferencesUpdate(BaseModel):
    notifications: Optional[bool] = None
    language: Optional[Literal["fr", "en"]] = None
    fcmToken: Optional[str] = None

    @field_validator("fcmToken")
    @classmethod
    def validate_fcm_token(cls, v):
        if v is not None and len(v) < MIN_FCM_TOKEN_LENGTH:
            raise ValueError("Token FCM invalide")
        return v


class UserCreate(BaseModel):
    """Backoffice creation of a profile for an existing Firebase account"""

    id: str = Field(..., min_length=1, max_length=128)
    email: str
    name: str = Field(..., min_length=2, max_length=100)
    phone: str
    address: Optional[Address] = None
    company: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Literal["client", "admin"] = "client"

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_international_phone(v)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    address: Optional[Address] = None
    company: Optional[str] = Field(None, min_length=2, max_length=100)
    location: Optional[Location] = None
    email: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_international_phone(v) if v else v


class UserAdminUpdate(UserUpdate):
    role: Optional[Literal["client", "admin"]] = None
    emailVerified: Optional[bool] = None


class InvoiceRecordCreate(BaseModel):
    """Manual invoice reference on the profile (document generated elsewhere)"""

    id: Optional[str] = None
    url: Optional[str] = None
    date: datetime
    amount: float = Field(..., gt=0)


class InvoiceSummary(BaseModel):
    id: str
    url: Optional[str] = None
    date: Optional[datetime] = None
    amount: float
    status: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    address: Optional[dict] = None
    company: Optional[str] = None
    role: str
    preferences: dict
    location: Optional[dict] = None
    emailVerified: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    lastLogin: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            phone=user.phone,
            address=user.address,
            company=user.company,
            role=user.role,
            preferences=user.preferences or {},
            location=user.location,
            emailVerified=bool(user.email_verified),
            createdAt=user.created_at,
            updatedAt=user.updated_at,
            lastLogin=user.last_login,
        )


class UserListResponse(BaseModel):
    users: list[UserResponse]
    pagination: Pagination


class EmailAvailabilityResponse(BaseModel):
    email: str
    available: bool
