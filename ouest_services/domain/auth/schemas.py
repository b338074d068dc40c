"""Auth domain schemas"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_international_phone
from ..users.schemas import Address, UserResponse


class _EmailModel(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class SignupRequest(_EmailModel):
    firebaseToken: str = Field(..., min_length=10)
    email: str
    name: str = Field(..., min_length=2, max_length=100)
    phone: str
    address: Optional[Address] = None
    company: Optional[str] = Field(None, min_length=2, max_length=100)
    fcmToken: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_international_phone(v)


class SigninRequest(BaseModel):
    firebaseToken: str = Field(..., min_length=10)
    email: Optional[str] = None
    fcmToken: Optional[str] = None


class FirebaseTokenRequest(BaseModel):
    firebaseToken: str = Field(..., min_length=10)


class CodeRequest(_EmailModel):
    """Ask for a code to be emailed (verification, password reset)"""

    email: str
    name: Optional[str] = Field(None, max_length=100)


class ConfirmNewEmailRequest(BaseModel):
    newEmail: str
    changeToken: str

    @field_validator("newEmail")
    @classmethod
    def check_new_email(cls, v):
        return validate_email(v)


class VerifyCodeRequest(_EmailModel):
    email: str
    code: str = Field(..., pattern=r"^\d{6}$")


class UpdatePasswordRequest(_EmailModel):
    email: str
    newPassword: str = Field(..., min_length=8, max_length=128)
    resetToken: str


class SigninLinkRequest(_EmailModel):
    email: str
    name: Optional[str] = Field(None, max_length=100)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class RefreshResponse(BaseModel):
    userId: str
    token: str


class CodeVerificationResponse(BaseModel):
    success: bool
    message: str
    redirect: Optional[str] = None
    resetToken: Optional[str] = None
    changeToken: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
