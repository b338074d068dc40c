import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp (stored without tzinfo so SQLite and Postgres compare alike)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to the naive UTC form used in storage"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def default_preferences() -> dict:
    return {"notifications": True, "language": "fr", "fcmToken": None}


class User(Base):
    __tablename__ = "users"

    # Firebase uid
    id = Column(String(128), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)
    address = Column(JSON, nullable=True)  # street, city, postalCode, country
    company = Column(String(100), nullable=True)
    role = Column(String(20), default="client", nullable=False)
    preferences = Column(JSON, default=default_preferences, nullable=False)
    location = Column(JSON, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    invoices = relationship(
        "Invoice", back_populates="user", cascade="all, delete-orphan", order_by="Invoice.created_at"
    )
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    items = Column(JSON, default=list, nullable=False)  # [{description, quantity, unitPrice}]
    due_date = Column(DateTime, nullable=True)
    url = Column(String(500), nullable=True)
    file_key = Column(String(500), nullable=True)
    status = Column(String(20), default="issued", nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="invoices")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    service_id = Column(String(36), nullable=False, index=True)
    service_name = Column(String(100), nullable=False)
    service_category = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=False)
    date = Column(String(30), nullable=False)  # requested intervention date (ISO)
    frequency = Column(String(30), nullable=False)
    options = Column(Text, nullable=True)  # dash-joined list
    message = Column(Text, nullable=False)
    consentement = Column(Boolean, default=False, nullable=False)
    status = Column(String(30), default="pending", nullable=False, index=True)
    email_status = Column(JSON, nullable=True)  # {clientSent, adminSent, sentAt}
    reply = Column(Text, nullable=True)
    replied_at = Column(DateTime, nullable=True)
    error_message = Column(String(500), nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    subjects = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    email_status = Column(JSON, nullable=True)  # {clientSent, adminSent, sentAt}
    reply = Column(Text, nullable=True)
    replied_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class CatalogService(Base):
    """A cleaning service offered in the public catalog"""

    __tablename__ = "catalog_services"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    area = Column(Float, nullable=True)
    duration = Column(Float, nullable=True)
    category = Column(String(50), nullable=False, index=True)
    images = Column(JSON, default=list, nullable=False)  # [{url, fileKey}]
    availability = Column(JSON, nullable=True)
    location = Column(JSON, nullable=True)
    provider_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    reviews = relationship("Review", back_populates="service", cascade="all, delete-orphan")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("catalog_services.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    images = Column(JSON, default=list, nullable=False)  # [{url, fileKey}]
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="reviews")
    service = relationship("CatalogService", back_populates="reviews")


class PendingCode(Base):
    """
    One outstanding email code per (purpose, email).
    Issuing again for the same key overwrites the previous code.
    """

    __tablename__ = "pending_codes"
    __table_args__ = (UniqueConstraint("purpose", "email", name="uq_pending_code_purpose_email"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    purpose = Column(String(32), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    code = Column(String(10), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    retry = Column(Boolean, default=False, nullable=False)
    payload = Column(JSON, default=dict, nullable=False)  # name, current_email, new_email
    created_at = Column(DateTime, default=utcnow)
