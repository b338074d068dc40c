"""Reservation router - public booking form plus owner/admin management"""

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
    ReplyRequest,
    ReservationCreate,
    ReservationFilters,
    ReservationListResponse,
    ReservationResponse,
    ReservationUpdate,
)
from .service import ReservationService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservations", tags=["Reservations"])

limit_bookings = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="reservations")


def get_reservation_service(db: Session = Depends(get_db)) -> ReservationService:
    """Dependency injection for ReservationService"""
    return ReservationService(db)


@router.post("", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    _: None = Depends(limit_bookings),
    current_user: Optional[User] = Depends(get_optional_user),
    service: ReservationService = Depends(get_reservation_service),
):
    return to_response(await service.create(data, current_user))


@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    params: PageParams = Depends(),
    filters: ReservationFilters = Depends(),
    _: User = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
):
    return service.list_reservations(filters, params.page, params.limit)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
):
    return to_response(service.get(current_user, reservation_id))


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: str,
    data: ReservationUpdate,
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
):
    return to_response(await service.update(current_user, reservation_id, data))


@router.delete("/{reservation_id}")
async def delete_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.delete(current_user, reservation_id)


@router.post("/{reservation_id}/reply", response_model=ReservationResponse)
async def reply_to_reservation(
    reservation_id: str,
    data: ReplyRequest,
    _: User = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
):
    return to_response(await service.reply(reservation_id, data))
