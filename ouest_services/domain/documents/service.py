"""Document service - invoice generation, storage and delivery"""

import asyncio
import logging

from sqlalchemy.orm import Session

from ... import email_service
from ...auth import ensure_owner_or_admin
from ...errors import AppError, NotFoundError
from ...models import Invoice, User, generate_id, naive_utc
from ...realtime import broadcast_manager
from ...services import notification_service, storage_service
from ...services.invoice_pdf_generator import generate_invoice_pdf
from ...shared.pagination import build_pagination
from .repository import InvoiceRepository
from .schemas import InvoiceGenerateRequest, InvoiceListResponse, InvoiceResponse, InvoiceUpdateRequest

logger = logging.getLogger(__name__)


def invoice_key(user_id: str, invoice_id: str) -> str:
    return f"invoices/{user_id}/{invoice_id}.pdf"


class DocumentService:
    """Service layer for invoices"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    def _user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("Utilisateur non trouvé")
        return user

    def _get(self, invoice_id: str) -> Invoice:
        invoice = self.repo.get_by_id(self.db, invoice_id)
        if not invoice:
            raise NotFoundError("Facture non trouvée")
        return invoice

    async def _render_and_upload(self, invoice: Invoice, user: User) -> Invoice:
        # Rendering reads these rows from a worker thread, so load them here first
        self.db.refresh(user)
        self.db.refresh(invoice)
        pdf_bytes = await asyncio.to_thread(generate_invoice_pdf, invoice, user)
        key = invoice_key(user.id, invoice.id)
        stored = await asyncio.to_thread(
            storage_service.upload_file,
            pdf_bytes,
            f"{invoice.id}.pdf",
            f"invoices/{user.id}",
            "application/pdf",
            key=key,
        )
        invoice.url = stored["url"]
        invoice.file_key = stored["fileKey"]
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    async def generate(self, data: InvoiceGenerateRequest) -> Invoice:
        user = self._user(data.userId)
        invoice = self.repo.create(
            self.db,
            id=generate_id(),
            user_id=user.id,
            amount=data.amount,
            items=[item.model_dump() for item in data.items],
            due_date=naive_utc(data.dueDate),
            status="issued",
        )

        try:
            invoice = await self._render_and_upload(invoice, user)
        except Exception as e:
            logger.error(f"❌ Invoice {invoice.id} generation failed: {e}")
            self.repo.delete(self.db, invoice)
            if isinstance(e, AppError):
                raise
            raise AppError(500, "Erreur serveur lors de la génération de la facture", str(e)) from e

        logger.info(f"🧾 Invoice {invoice.id} generated for {user.id} ({invoice.amount} €)")
        await broadcast_manager.emit_to_user(
            user.id, "newInvoice", {"invoiceId": invoice.id, "amount": invoice.amount, "url": invoice.url}
        )
        await notification_service.notify_user(
            self.db, user.id, "Nouvelle facture", f"Une nouvelle facture de {invoice.amount:.2f} € est disponible."
        )
        try:
            await email_service.send_invoice_email(
                to=user.email,
                name=user.name,
                invoice_id=invoice.id,
                amount=invoice.amount,
                due_date=invoice.due_date.strftime("%d/%m/%Y") if invoice.due_date else "",
                url=invoice.url,
            )
        except Exception as e:
            logger.error(f"❌ Invoice email failed for {invoice.id}: {e}")
        return invoice

    def get(self, user: User, invoice_id: str) -> Invoice:
        invoice = self._get(invoice_id)
        ensure_owner_or_admin(user, invoice.user_id)
        return invoice

    async def update(self, invoice_id: str, data: InvoiceUpdateRequest) -> Invoice:
        invoice = self._get(invoice_id)
        changes = data.model_dump(exclude_unset=True)
        regenerate = any(field in changes for field in ("amount", "items", "dueDate"))

        if data.amount is not None:
            invoice.amount = data.amount
        if data.items is not None:
            invoice.items = [item.model_dump() for item in data.items]
        if "dueDate" in changes:
            invoice.due_date = naive_utc(data.dueDate)
        if data.status is not None:
            invoice.status = data.status
        self.db.commit()
        self.db.refresh(invoice)

        if regenerate:
            invoice = await self._render_and_upload(invoice, self._user(invoice.user_id))
            logger.info(f"🧾 Invoice {invoice.id} regenerated")

        await broadcast_manager.emit_to_user(
            invoice.user_id, "invoiceUpdated", {"invoiceId": invoice.id, "status": invoice.status}
        )
        return invoice

    async def delete(self, invoice_id: str) -> dict:
        invoice = self._get(invoice_id)
        if invoice.file_key:
            try:
                await asyncio.to_thread(storage_service.delete_file, invoice.file_key)
            except NotFoundError:
                logger.warning(f"⚠️ Invoice file already gone: {invoice.file_key}")
        user_id = invoice.user_id
        self.repo.delete(self.db, invoice)
        await broadcast_manager.emit_to_user(user_id, "invoiceDeleted", {"invoiceId": invoice_id})
        logger.info(f"🗑️ Invoice {invoice_id} deleted")
        return {"message": "Facture supprimée", "invoiceId": invoice_id}

    def list_for_user(self, user: User, user_id: str, page: int, limit: int) -> InvoiceListResponse:
        ensure_owner_or_admin(user, user_id)
        invoices, total = self.repo.list_for_user(self.db, user_id, page, limit)
        return InvoiceListResponse(
            invoices=[InvoiceResponse.from_invoice(i) for i in invoices],
            pagination=build_pagination(page, limit, total),
        )
