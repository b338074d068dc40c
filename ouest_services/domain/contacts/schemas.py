"""Contact message schemas"""

from datetime import datetime
from typing import Literal, Optional, Union

from fastapi import Query
from pydantic import BaseModel, Field, field_validator

from ...shared.pagination import Pagination
from ...shared.validators import validate_email

ContactStatus = Literal["pending", "replied", "archived", "deleted"]

STATUS_LABELS = {
    "pending": "En attente",
    "replied": "Répondu",
    "archived": "Archivé",
    "created_email_failed": "Créé (email échoué)",
    "spam": "Spam",
    "closed": "Fermé",
    "deleted": "Supprimé",
}


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    subjects: Optional[Union[list[str], str]] = None
    message: str = Field(..., min_length=10, max_length=1000)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class ContactUpdate(ContactCreate):
    status: ContactStatus = "pending"


class ContactReplyRequest(BaseModel):
    reply: str = Field(..., min_length=10, max_length=2000)

    @field_validator("reply")
    @classmethod
    def strip_reply(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError("La réponse doit contenir au moins 10 caractères")
        return v


class ContactFilters:
    """Query dependency shared by the list, stats and CSV export"""

    def __init__(
        self,
        name: Optional[str] = Query(None),
        email: Optional[str] = Query(None),
        status: Optional[ContactStatus] = Query(None),
        repliedOnly: bool = Query(False),
        dateFrom: Optional[datetime] = Query(None),
        dateTo: Optional[datetime] = Query(None),
    ):
        self.name = name
        self.email = email
        self.status = status
        self.replied_only = repliedOnly
        self.date_from = dateFrom
        self.date_to = dateTo


class ContactResponse(BaseModel):
    id: str
    userId: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    subjects: Optional[str] = None
    subjectsArray: list[str] = []
    subjectsCount: int = 0
    message: str
    messagePreview: str
    messageLength: int
    status: str
    statusLabel: str
    phoneValid: bool
    emailStatus: Optional[dict] = None
    reply: Optional[str] = None
    repliedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ContactListResponse(BaseModel):
    contacts: list[ContactResponse]
    pagination: Pagination


class ContactStats(BaseModel):
    total: int
    pending: int
    replied: int
    archived: int
    deleted: int
    withSubjects: int
    averageMessageLength: float
    averageDaysToReply: float
    fastestReply: Optional[float] = None
    slowestReply: Optional[float] = None
