"""Contact service - contact form messages, admin replies, stats and CSV export"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ... import email_service
from ...auth import ensure_owner_or_admin
from ...errors import AppError, NotFoundError
from ...models import Contact, User, utcnow
from ...realtime import broadcast_manager
from ...security_utils import sanitize_text
from ...services import notification_service
from ...shared.pagination import build_pagination
from ...shared.validators import is_valid_fr_phone, join_options, normalize_fr_phone, split_options
from .repository import ContactRepository
from .schemas import (
    STATUS_LABELS,
    ContactCreate,
    ContactFilters,
    ContactListResponse,
    ContactReplyRequest,
    ContactResponse,
    ContactStats,
    ContactUpdate,
)

logger = logging.getLogger(__name__)

CSV_HEADER = "ID,Nom,Email,Téléphone,Sujets,Message,Statut,Créé le,Répondu le\n"


def to_response(contact: Contact) -> ContactResponse:
    subjects = split_options(contact.subjects)
    message = contact.message or ""
    return ContactResponse(
        id=contact.id,
        userId=contact.user_id,
        name=contact.name,
        email=contact.email,
        phone=contact.phone,
        subjects=contact.subjects,
        subjectsArray=subjects,
        subjectsCount=len(subjects),
        message=message,
        messagePreview=message[:100] + "..." if len(message) > 100 else message,
        messageLength=len(message),
        status=contact.status,
        statusLabel=STATUS_LABELS.get(contact.status, contact.status),
        phoneValid=is_valid_fr_phone(contact.phone),
        emailStatus=contact.email_status,
        reply=contact.reply,
        repliedAt=contact.replied_at,
        createdAt=contact.created_at,
        updatedAt=contact.updated_at,
    )


def _fields(data: ContactCreate) -> dict:
    return {
        "name": sanitize_text(data.name),
        "email": data.email,
        "phone": normalize_fr_phone(data.phone) or data.phone,
        "subjects": sanitize_text(join_options(data.subjects)),
        "message": sanitize_text(data.message),
    }


def _fr_date(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _csv_text(value: Optional[str]) -> str:
    return (value or "").replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


class ContactService:
    """Service layer for contact messages"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    def _get(self, contact_id: str) -> Contact:
        contact = self.repo.get_by_id(self.db, contact_id)
        if not contact:
            raise NotFoundError("Message de contact non trouvé")
        return contact

    def _get_for(self, user: User, contact_id: str) -> Contact:
        contact = self._get(contact_id)
        ensure_owner_or_admin(user, contact.user_id)
        if contact.status == "deleted" and user.role != "admin":
            raise NotFoundError("Message de contact non trouvé")
        return contact

    async def create(self, data: ContactCreate, user: Optional[User] = None) -> Contact:
        contact = self.repo.create(self.db, user_id=user.id if user else None, status="pending", **_fields(data))
        logger.info(f"✉️ Contact message created: {contact.id}")

        email_status = {"clientSent": False, "adminSent": False, "sentAt": None}
        try:
            await email_service.send_contact_client_confirmation(contact)
            email_status["clientSent"] = True
            await email_service.send_contact_admin_notification(contact)
            email_status["adminSent"] = True
            email_status["sentAt"] = utcnow().isoformat()
        except Exception as e:
            logger.error(f"❌ Contact emails failed for {contact.id}: {e}")
        contact = self.repo.update(self.db, contact, email_status=email_status)

        await notification_service.notify_new_contact(self.db, contact)
        return contact

    def get(self, user: User, contact_id: str) -> Contact:
        return self._get_for(user, contact_id)

    async def update(self, user: User, contact_id: str, data: ContactUpdate) -> Contact:
        contact = self._get_for(user, contact_id)
        updated = self.repo.update(self.db, contact, status=data.status, **_fields(data))
        await broadcast_manager.emit_to_admins("contactUpdated", {"contactId": updated.id, "status": updated.status})
        return updated

    async def delete(self, user: User, contact_id: str) -> dict:
        contact = self._get_for(user, contact_id)
        self.repo.update(self.db, contact, status="deleted", deleted_at=utcnow(), deleted_by=user.id)

        payload = {"contactId": contact_id, "deletedBy": user.id}
        if contact.user_id:
            await broadcast_manager.emit_to_user(contact.user_id, "contactDeleted", payload)
        await broadcast_manager.emit_to_admins("contactDeleted", payload)
        logger.info(f"🗑️ Contact {contact_id} deleted by {user.id}")
        return {"message": "Message de contact supprimé", "contactId": contact_id}

    def list_contacts(self, filters: ContactFilters, page: int, limit: int) -> ContactListResponse:
        contacts, total = self.repo.list_contacts(self.db, filters, page, limit)
        return ContactListResponse(
            contacts=[to_response(c) for c in contacts],
            pagination=build_pagination(page, limit, total),
        )

    async def reply(self, contact_id: str, data: ContactReplyRequest) -> Contact:
        contact = self._get(contact_id)
        reply = sanitize_text(data.reply)
        contact = self.repo.update(self.db, contact, reply=reply, replied_at=utcnow(), status="replied")

        email_status = dict(contact.email_status or {})
        try:
            await email_service.send_reply_email(
                to=contact.email,
                name=contact.name,
                original_message=contact.message,
                reply=reply,
                subject_label="message",
            )
            email_status["replySent"] = True
        except Exception as e:
            logger.error(f"❌ Reply email failed for contact {contact.id}: {e}")
            email_status["replySent"] = False
        contact = self.repo.update(self.db, contact, email_status=email_status)

        if contact.user_id:
            await broadcast_manager.emit_to_user(contact.user_id, "contactReplied", {"contactId": contact.id})
        return contact

    def stats(self, filters: ContactFilters) -> ContactStats:
        contacts = self.repo.all_matching(self.db, filters)
        by_status = {status: 0 for status in ("pending", "replied", "archived", "deleted")}
        for contact in contacts:
            if contact.status in by_status:
                by_status[contact.status] += 1

        reply_days = [
            (c.replied_at - c.created_at).total_seconds() / 86400 for c in contacts if c.replied_at and c.created_at
        ]
        total_length = sum(len(c.message or "") for c in contacts)

        return ContactStats(
            total=len(contacts),
            withSubjects=sum(1 for c in contacts if c.subjects),
            averageMessageLength=total_length / len(contacts) if contacts else 0,
            averageDaysToReply=sum(reply_days) / len(reply_days) if reply_days else 0,
            fastestReply=min(reply_days) if reply_days else None,
            slowestReply=max(reply_days) if reply_days else None,
            **by_status,
        )

    def export_csv(self, user: User, filters: ContactFilters) -> StreamingResponse:
        """Export matching contacts as CSV (header bare, every value quoted)"""
        try:
            contacts = self.repo.all_matching(self.db, filters)
            logger.info(f"📊 CSV export of {len(contacts)} contacts requested by {user.id}")

            output = StringIO()
            output.write(CSV_HEADER)
            writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
            for contact in contacts:
                writer.writerow(
                    [
                        contact.id,
                        contact.name,
                        contact.email,
                        contact.phone or "",
                        _csv_text(contact.subjects),
                        _csv_text(contact.message),
                        STATUS_LABELS.get(contact.status, contact.status),
                        _fr_date(contact.created_at),
                        _fr_date(contact.replied_at),
                    ]
                )

            output.seek(0)
            filename = f"contacts_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
            return StreamingResponse(
                iter([output.getvalue()]),
                media_type="text/csv; charset=utf-8",
                headers={
                    "Content-Disposition": f"attachment; filename={filename}",
                    "Cache-Control": "no-cache",
                },
            )
        except Exception as e:
            logger.error(f"❌ CSV export failed for {user.id}: {e}")
            raise AppError(500, "Erreur serveur lors de l'export des contacts", str(e)) from e
