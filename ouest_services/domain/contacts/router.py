"""Contact router - public contact form plus admin inbox"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_admin
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.pagination import PageParams
from .schemas import (
    ContactCreate,
    ContactFilters,
    ContactListResponse,
    ContactReplyRequest,
    ContactResponse,
    ContactStats,
    ContactUpdate,
)
from .service import ContactService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["Contacts"])

limit_contact_form = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="contact_form")


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(db)


@router.post("", response_model=ContactResponse, status_code=201)
async def create_contact(
    data: ContactCreate,
    _: None = Depends(limit_contact_form),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ContactService = Depends(get_contact_service),
):
    return to_response(await service.create(data, current_user))


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    params: PageParams = Depends(),
    filters: ContactFilters = Depends(),
    _: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    return service.list_contacts(filters, params.page, params.limit)


@router.get("/stats", response_model=ContactStats)
async def contact_stats(
    filters: ContactFilters = Depends(),
    _: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    return service.stats(filters)


@router.get("/export")
async def export_contacts(
    filters: ContactFilters = Depends(),
    current_user: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    return service.export_csv(current_user, filters)


@router.post("/{contact_id}/reply", response_model=ContactResponse)
async def reply_to_contact(
    contact_id: str,
    data: ContactReplyRequest,
    _: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    return to_response(await service.reply(contact_id, data))


# ============================================================================
# OWNER OR ADMIN
# ============================================================================


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: str,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return to_response(service.get(current_user, contact_id))


@router.put("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: str,
    data: ContactUpdate,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return to_response(await service.update(current_user, contact_id, data))


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return await service.delete(current_user, contact_id)
