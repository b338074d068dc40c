"""Auth router - signup/signin and email code endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ..users.schemas import UserResponse
from .schemas import (
    AuthResponse,
    CodeRequest,
    CodeVerificationResponse,
    ConfirmNewEmailRequest,
    FirebaseTokenRequest,
    MessageResponse,
    RefreshResponse,
    SigninLinkRequest,
    SigninRequest,
    SignupRequest,
    UpdatePasswordRequest,
    VerifyCodeRequest,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

limit_signup = create_rate_limiter(limit=5, window_seconds=900, key_prefix="signup")
limit_signin = create_rate_limiter(limit=10, window_seconds=300, key_prefix="signin")
limit_codes = create_rate_limiter(limit=5, window_seconds=600, key_prefix="email_codes")
limit_verify = create_rate_limiter(limit=10, window_seconds=600, key_prefix="verify_codes")


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db)


# ============================================================================
# SESSIONS
# ============================================================================


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    data: SignupRequest,
    _: None = Depends(limit_signup),
    service: AuthService = Depends(get_auth_service),
):
    user, token = await service.signup(data)
    return AuthResponse(user=UserResponse.from_user(user), token=token)


@router.post("/signin", response_model=AuthResponse)
async def signin(
    data: SigninRequest,
    _: None = Depends(limit_signin),
    service: AuthService = Depends(get_auth_service),
):
    user, token = await service.signin(data)
    return AuthResponse(user=UserResponse.from_user(user), token=token)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(data: FirebaseTokenRequest, service: AuthService = Depends(get_auth_service)):
    user_id, token = await service.refresh(data.firebaseToken)
    return RefreshResponse(userId=user_id, token=token)


@router.post("/signout", response_model=MessageResponse)
async def signout(data: FirebaseTokenRequest, service: AuthService = Depends(get_auth_service)):
    await service.signout(data.firebaseToken)
    return MessageResponse(message="Déconnexion réussie")


@router.post("/verify-token", response_model=AuthResponse)
async def verify_token(data: FirebaseTokenRequest, service: AuthService = Depends(get_auth_service)):
    user, token = await service.verify_token(data.firebaseToken)
    return AuthResponse(user=UserResponse.from_user(user), token=token)


@router.post("/email-link-signin", response_model=MessageResponse)
async def email_link_signin(
    data: SigninLinkRequest,
    _: None = Depends(limit_codes),
    service: AuthService = Depends(get_auth_service),
):
    await service.send_signin_link(data.email, data.name)
    return MessageResponse(message="Lien de connexion envoyé")


# ============================================================================
# EMAIL CODES
# ============================================================================


@router.post("/verify-email", response_model=MessageResponse)
async def send_email_verification(
    data: CodeRequest,
    _: None = Depends(limit_codes),
    service: AuthService = Depends(get_auth_service),
):
    await service.send_email_verification(data.email, data.name)
    return MessageResponse(message="Email de vérification envoyé")


@router.post("/verify-email-code", response_model=CodeVerificationResponse)
async def verify_email_code(
    data: VerifyCodeRequest,
    _: None = Depends(limit_verify),
    service: AuthService = Depends(get_auth_service),
):
    return await service.verify_email_code(data.email, data.code)


@router.post("/password-reset", response_model=MessageResponse)
async def send_password_reset(
    data: CodeRequest,
    _: None = Depends(limit_codes),
    service: AuthService = Depends(get_auth_service),
):
    await service.send_password_reset(data.email, data.name)
    return MessageResponse(message="Email de réinitialisation envoyé")


@router.post("/verify-password-reset-code", response_model=CodeVerificationResponse)
async def verify_password_reset_code(
    data: VerifyCodeRequest,
    _: None = Depends(limit_verify),
    service: AuthService = Depends(get_auth_service),
):
    return await service.verify_password_reset_code(data.email, data.code)


@router.post("/update-password", response_model=MessageResponse)
async def update_password(data: UpdatePasswordRequest, service: AuthService = Depends(get_auth_service)):
    await service.update_password(data)
    return MessageResponse(message="Mot de passe mis à jour avec succès")


@router.post("/request-new-email", response_model=MessageResponse)
async def request_new_email(
    _: None = Depends(limit_codes),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.request_new_email(current_user)
    return MessageResponse(message="Code envoyé à votre adresse actuelle")


@router.post("/confirm-new-email", response_model=MessageResponse)
async def confirm_new_email(
    data: ConfirmNewEmailRequest,
    _: None = Depends(limit_codes),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.confirm_new_email(current_user, data)
    return MessageResponse(message="Code envoyé à votre nouvelle adresse")


@router.post("/verify-change-email-code", response_model=CodeVerificationResponse)
async def verify_change_email_code(
    data: VerifyCodeRequest,
    _: None = Depends(limit_verify),
    service: AuthService = Depends(get_auth_service),
):
    return await service.verify_change_email_code(data.email, data.code)
