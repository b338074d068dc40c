"""Reservation service - booking requests, admin replies and listing"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import email_service
from ...auth import ensure_owner_or_admin
from ...errors import NotFoundError
from ...models import Reservation, User, utcnow
from ...realtime import broadcast_manager
from ...security_utils import sanitize_text
from ...services import notification_service
from ...shared.pagination import build_pagination
from ...shared.validators import is_valid_fr_phone, join_options, normalize_fr_phone, split_options
from .repository import ReservationRepository
from .schemas import (
    STATUS_LABELS,
    ReplyRequest,
    ReservationCreate,
    ReservationFilters,
    ReservationListResponse,
    ReservationResponse,
    ReservationSummary,
    ReservationUpdate,
)

logger = logging.getLogger(__name__)


def to_response(reservation: Reservation) -> ReservationResponse:
    """Enriched view with previews, option list and status label"""
    options = split_options(reservation.options)
    message = reservation.message or ""
    return ReservationResponse(
        id=reservation.id,
        userId=reservation.user_id,
        serviceId=reservation.service_id,
        serviceName=reservation.service_name,
        serviceCategory=reservation.service_category,
        name=reservation.name,
        email=reservation.email,
        phone=reservation.phone,
        address=reservation.address,
        date=reservation.date,
        frequency=reservation.frequency,
        options=reservation.options,
        optionsArray=options,
        optionsCount=len(options),
        optionsPreview=reservation.options[:50] if reservation.options else None,
        message=message,
        messagePreview=message[:100] + "..." if len(message) > 100 else message,
        consentement=reservation.consentement,
        consentementAccepted=bool(reservation.consentement),
        status=reservation.status,
        statusLabel=STATUS_LABELS.get(reservation.status, reservation.status),
        phoneValid=is_valid_fr_phone(reservation.phone),
        emailStatus=reservation.email_status,
        reply=reservation.reply,
        repliedAt=reservation.replied_at,
        errorMessage=reservation.error_message,
        createdAt=reservation.created_at,
        updatedAt=reservation.updated_at,
    )


def _fields(data) -> dict:
    return {
        "service_id": data.serviceId,
        "service_name": sanitize_text(data.serviceName),
        "service_category": sanitize_text(data.serviceCategory),
        "name": sanitize_text(data.name),
        "email": data.email,
        "phone": normalize_fr_phone(data.phone) or data.phone,
        "address": sanitize_text(data.address),
        "date": data.date.isoformat(),
        "frequency": data.frequency,
        "options": join_options(data.options),
        "message": sanitize_text(data.message),
        "consentement": True,
    }


class ReservationService:
    """Service layer for reservation business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReservationRepository()

    def _get(self, reservation_id: str) -> Reservation:
        reservation = self.repo.get_by_id(self.db, reservation_id)
        if not reservation:
            raise NotFoundError("Réservation non trouvée")
        return reservation

    def _get_for(self, user: User, reservation_id: str) -> Reservation:
        reservation = self._get(reservation_id)
        ensure_owner_or_admin(user, reservation.user_id)
        if reservation.status == "deleted" and user.role != "admin":
            raise NotFoundError("Réservation non trouvée")
        return reservation

    async def create(self, data: ReservationCreate, user: Optional[User] = None) -> Reservation:
        reservation = self.repo.create(
            self.db,
            user_id=user.id if user else None,
            status="pending",
            **_fields(data),
        )
        logger.info(f"📅 Reservation created: {reservation.id} ({reservation.service_name})")

        email_status = {"clientSent": False, "adminSent": False, "sentAt": None}
        try:
            await email_service.send_reservation_client_confirmation(reservation)
            email_status["clientSent"] = True
            await email_service.send_reservation_admin_notification(reservation)
            email_status["adminSent"] = True
            email_status["sentAt"] = utcnow().isoformat()
            reservation = self.repo.update(self.db, reservation, email_status=email_status)
        except Exception as e:
            logger.error(f"❌ Reservation emails failed for {reservation.id}: {e}")
            reservation = self.repo.update(
                self.db,
                reservation,
                status="created_email_failed",
                error_message=str(e)[:500],
                email_status=email_status,
            )

        await notification_service.notify_new_reservation(self.db, reservation)
        return reservation

    def get(self, user: User, reservation_id: str) -> Reservation:
        return self._get_for(user, reservation_id)

    async def update(self, user: User, reservation_id: str, data: ReservationUpdate) -> Reservation:
        reservation = self._get_for(user, reservation_id)
        updated = self.repo.update(self.db, reservation, status=data.status, **_fields(data))
        payload = {"reservationId": updated.id, "status": updated.status}
        if updated.user_id:
            await broadcast_manager.emit_to_user(updated.user_id, "reservationUpdated", payload)
        await broadcast_manager.emit_to_admins("reservationUpdated", payload)
        return updated

    async def delete(self, user: User, reservation_id: str) -> dict:
        """Soft delete: the row stays with status `deleted`"""
        reservation = self._get_for(user, reservation_id)
        self.repo.update(self.db, reservation, status="deleted", deleted_at=utcnow(), deleted_by=user.id)

        payload = {"reservationId": reservation_id, "deletedBy": user.id}
        if reservation.user_id:
            await broadcast_manager.emit_to_user(reservation.user_id, "reservationDeleted", payload)
        await broadcast_manager.emit_to_admins("reservationDeleted", payload)
        logger.info(f"🗑️ Reservation {reservation_id} deleted by {user.id}")
        return {"message": "Réservation supprimée", "reservationId": reservation_id}

    def list_reservations(self, filters: ReservationFilters, page: int, limit: int) -> ReservationListResponse:
        items, total = self.repo.list_reservations(self.db, filters, page, limit)
        return ReservationListResponse(
            reservations=[to_response(r) for r in items],
            pagination=build_pagination(page, limit, total),
            summary=ReservationSummary(**self.repo.summary(self.db, filters)),
        )

    async def reply(self, reservation_id: str, data: ReplyRequest) -> Reservation:
        reservation = self._get(reservation_id)
        reply = sanitize_text(data.reply)
        reservation = self.repo.update(self.db, reservation, reply=reply, replied_at=utcnow(), status="replied")

        email_status = dict(reservation.email_status or {})
        try:
            await email_service.send_reply_email(
                to=reservation.email,
                name=reservation.name,
                original_message=reservation.message,
                reply=reply,
                subject_label=f"demande de réservation ({reservation.service_name})",
            )
            email_status["replySent"] = True
        except Exception as e:
            logger.error(f"❌ Reply email failed for reservation {reservation.id}: {e}")
            email_status["replySent"] = False
        reservation = self.repo.update(self.db, reservation, email_status=email_status)

        if reservation.user_id:
            await broadcast_manager.emit_to_user(
                reservation.user_id, "reservationReplied", {"reservationId": reservation.id}
            )
        return reservation
