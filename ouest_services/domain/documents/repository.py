"""Invoice repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Invoice


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_by_id(db: Session, invoice_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.id == invoice_id).first()

    @staticmethod
    def get_for_user(db: Session, invoice_id: str, user_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.user_id == user_id).first()

    @staticmethod
    def create(db: Session, **invoice_data) -> Invoice:
        invoice = Invoice(**invoice_data)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def update(db: Session, invoice: Invoice, **updates) -> Invoice:
        for key, value in updates.items():
            if value is not None and hasattr(invoice, key):
                setattr(invoice, key, value)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def delete(db: Session, invoice: Invoice) -> None:
        db.delete(invoice)
        db.commit()

    @staticmethod
    def list_for_user(db: Session, user_id: str, page: int, limit: int) -> tuple[list[Invoice], int]:
        query = db.query(Invoice).filter(Invoice.user_id == user_id)
        total = query.count()
        invoices = query.order_by(Invoice.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return invoices, total

    @staticmethod
    def file_keys_for_user(db: Session, user_id: str) -> list[str]:
        rows = db.query(Invoice.file_key).filter(Invoice.user_id == user_id).all()
        return [key for (key,) in rows if key]
