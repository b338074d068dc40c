"""Contact repository - Database operations for contact messages"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Contact, naive_utc


class ContactRepository:
    """Repository for contact message database operations"""

    @staticmethod
    def get_by_id(db: Session, contact_id: str) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id).first()

    @staticmethod
    def create(db: Session, **data) -> Contact:
        contact = Contact(**data)
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def update(db: Session, contact: Contact, **updates) -> Contact:
        for key, value in updates.items():
            if hasattr(contact, key):
                setattr(contact, key, value)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def filtered_query(db: Session, filters):
        query = db.query(Contact)
        if filters.name:
            query = query.filter(Contact.name.ilike(f"%{filters.name}%"))
        if filters.email:
            query = query.filter(func.lower(Contact.email) == filters.email.strip().lower())
        if filters.status:
            query = query.filter(Contact.status == filters.status)
        if filters.replied_only:
            query = query.filter(Contact.replied_at.isnot(None))
        if filters.date_from:
            query = query.filter(Contact.created_at >= naive_utc(filters.date_from))
        if filters.date_to:
            query = query.filter(Contact.created_at <= naive_utc(filters.date_to))
        return query

    @staticmethod
    def list_contacts(db: Session, filters, page: int, limit: int) -> tuple[list[Contact], int]:
        query = ContactRepository.filtered_query(db, filters)
        total = query.count()
        contacts = query.order_by(Contact.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return contacts, total

    @staticmethod
    def all_matching(db: Session, filters) -> list[Contact]:
        return ContactRepository.filtered_query(db, filters).order_by(Contact.created_at.desc()).all()
