"""User router - FastAPI endpoints for profiles and admin user management"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.pagination import PageParams
from .schemas import (
    EmailAvailabilityResponse,
    InvoiceRecordCreate,
    InvoiceSummary,
    PreferencesUpdate,
    UserAdminUpdate,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

limit_email_checks = create_rate_limiter(limit=30, window_seconds=60, key_prefix="check_email")


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.get("/check-email/{email}", response_model=EmailAvailabilityResponse)
async def check_email_availability(
    email: str,
    _: None = Depends(limit_email_checks),
    service: UserService = Depends(get_user_service),
):
    return service.check_email_availability(email)


# ============================================================================
# SELF-SERVICE
# ============================================================================


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_profile(current_user, data)
    return UserResponse.from_user(user)


@router.patch("/preferences", response_model=UserResponse)
async def update_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(service.update_preferences(current_user, data))


@router.get("/invoices", response_model=list[InvoiceSummary])
async def list_own_invoices(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.list_invoices(current_user)


@router.post("/invoices", response_model=InvoiceSummary, status_code=201)
async def add_invoice(
    data: InvoiceRecordCreate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.add_invoice(current_user, data)


@router.delete("/invoices/{invoice_id}")
async def remove_invoice(
    invoice_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.remove_invoice(current_user, invoice_id)


# ============================================================================
# ADMIN
# ============================================================================


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(await service.create_user(data))


@router.get("", response_model=UserListResponse)
async def list_users(
    params: PageParams = Depends(),
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.list_users(params.page, params.limit)


@router.get("/email/{email}", response_model=UserResponse)
async def get_user_by_email(
    email: str,
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(service.get_user_by_email(email))


@router.get("/role/{role}", response_model=UserListResponse)
async def list_users_by_role(
    role: Literal["client", "admin"],
    params: PageParams = Depends(),
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.list_users(params.page, params.limit, role=role)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(service.get_user(user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserAdminUpdate,
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(await service.update_user(user_id, data))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    _: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.delete_user(user_id)
