"""User service - Business logic for profiles, preferences and admin user management"""

import asyncio
import logging

from sqlalchemy.orm import Session

from ... import firebase
from ...errors import AppError, NotFoundError
from ...models import User, default_preferences, generate_id, naive_utc
from ...realtime import broadcast_manager
from ...services import notification_service, storage_service
from ...shared.pagination import build_pagination
from ..documents.repository import InvoiceRepository
from .repository import UserRepository
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

logger = logging.getLogger(__name__)


def _dump(model):
    return model.model_dump(exclude_none=True) if model is not None else None


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()
        self.invoices = InvoiceRepository()

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise NotFoundError("Utilisateur non trouvé")
        return user

    def get_user_by_email(self, email: str) -> User:
        user = self.repo.get_by_email(self.db, email)
        if not user:
            raise NotFoundError("Utilisateur non trouvé")
        return user

    def check_email_availability(self, email: str) -> EmailAvailabilityResponse:
        email = email.strip().lower()
        return EmailAvailabilityResponse(email=email, available=self.repo.get_by_email(self.db, email) is None)

    async def create_user(self, data: UserCreate) -> User:
        """Create the profile of an existing Firebase account"""
        if self.repo.get_by_id(self.db, data.id):
            raise AppError(409, "Utilisateur déjà existant")
        if self.repo.get_by_email(self.db, data.email):
            raise AppError(409, "Email déjà utilisé")

        try:
            record = await asyncio.to_thread(firebase.get_user, data.id)
        except Exception as e:
            logger.warning(f"⚠️ Firebase account {data.id} not found: {e}")
            raise NotFoundError("Compte Firebase introuvable", str(e)) from e

        user = self.repo.create(
            self.db,
            id=data.id,
            email=data.email,
            name=data.name,
            phone=data.phone,
            address=_dump(data.address),
            company=data.company,
            role=data.role,
            preferences=default_preferences(),
            email_verified=bool(getattr(record, "email_verified", False)),
        )
        await asyncio.to_thread(firebase.ensure_role_claim, user.id, user.role)
        await notification_service.notify_user_created(self.db, user)
        logger.info(f"👤 User created: {user.id} ({user.role})")
        return user

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        if data.email is not None and data.email.strip().lower() != user.email:
            raise AppError(400, "Le changement d'email passe par la vérification par code")

        updated = self.repo.update(
            self.db,
            user,
            name=data.name,
            phone=data.phone,
            address=_dump(data.address),
            company=data.company,
            location=_dump(data.location),
        )
        await broadcast_manager.emit_to_user(user.id, "profileUpdated", {"userId": user.id})
        return updated

    async def update_user(self, user_id: str, data: UserAdminUpdate) -> User:
        user = self.get_user(user_id)
        if data.email is not None and data.email.strip().lower() != user.email:
            raise AppError(400, "Le changement d'email passe par la vérification par code")

        role_changed = data.role is not None and data.role != user.role
        updated = self.repo.update(
            self.db,
            user,
            name=data.name,
            phone=data.phone,
            address=_dump(data.address),
            company=data.company,
            location=_dump(data.location),
            role=data.role,
            email_verified=data.emailVerified,
        )
        if role_changed:
            await asyncio.to_thread(firebase.ensure_role_claim, updated.id, updated.role)
            logger.info(f"Role of {updated.id} changed to {updated.role}")
        await broadcast_manager.emit_to_user(updated.id, "profileUpdated", {"userId": updated.id})
        return updated

    async def delete_user(self, user_id: str) -> dict:
        """Delete profile, invoice files and the Firebase account"""
        user = self.get_user(user_id)
        file_keys = self.invoices.file_keys_for_user(self.db, user.id)
        await asyncio.to_thread(storage_service.delete_files_quietly, file_keys)
        try:
            await asyncio.to_thread(firebase.delete_user, user.id)
        except Exception as e:
            logger.error(f"❌ Firebase deletion failed for {user.id}: {e}")
            raise AppError(500, "Erreur serveur lors de la suppression du compte", str(e)) from e

        self.repo.delete(self.db, user)
        await broadcast_manager.emit_to_admins("userDeleted", {"userId": user_id})
        logger.info(f"🗑️ User deleted: {user_id}")
        return {"message": "Utilisateur supprimé", "userId": user_id}

    def list_users(self, page: int, limit: int, role: str = None) -> UserListResponse:
        users, total = self.repo.list_users(self.db, page, limit, role)
        return UserListResponse(
            users=[UserResponse.from_user(u) for u in users],
            pagination=build_pagination(page, limit, total),
        )

    def update_preferences(self, user: User, data: PreferencesUpdate) -> User:
        preferences = {**default_preferences(), **(user.preferences or {})}
        changes = data.model_dump(exclude_unset=True)
        preferences.update(changes)
        user.preferences = preferences
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Preferences updated for {user.id}: {sorted(changes)}")
        return user

    def list_invoices(self, user: User) -> list[InvoiceSummary]:
        return [
            InvoiceSummary(id=i.id, url=i.url, date=i.created_at, amount=i.amount, status=i.status)
            for i in user.invoices
        ]

    def add_invoice(self, user: User, data: InvoiceRecordCreate) -> InvoiceSummary:
        invoice_id = data.id or generate_id()
        if self.invoices.get_by_id(self.db, invoice_id):
            raise AppError(409, "Facture déjà existante")
        invoice = self.invoices.create(
            self.db,
            id=invoice_id,
            user_id=user.id,
            amount=data.amount,
            url=data.url,
            items=[],
            created_at=naive_utc(data.date),
            status="recorded",
        )
        return InvoiceSummary(
            id=invoice.id, url=invoice.url, date=invoice.created_at, amount=invoice.amount, status=invoice.status
        )

    async def remove_invoice(self, user: User, invoice_id: str) -> dict:
        invoice = self.invoices.get_for_user(self.db, invoice_id, user.id)
        if not invoice:
            raise NotFoundError("Facture non trouvée")
        if invoice.file_key:
            await asyncio.to_thread(storage_service.delete_files_quietly, [invoice.file_key])
        self.invoices.delete(self.db, invoice)
        return {"message": "Facture supprimée", "invoiceId": invoice_id}
