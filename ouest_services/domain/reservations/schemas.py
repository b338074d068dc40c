"""Reservation domain schemas"""

from datetime import date as Date
from datetime import datetime
from typing import Any, Literal, Optional, Union

from fastapi import Query
from pydantic import BaseModel, Field, field_validator

from ...shared.pagination import Pagination
from ...shared.validators import validate_email

Frequency = Literal["ponctuelle", "hebdomadaire", "bi-mensuelle", "mensuelle"]
ReservationStatus = Literal[
    "pending",
    "confirmed",
    "completed",
    "cancelled",
    "replied",
    "created_email_failed",
    "spam",
    "closed",
    "deleted",
]

STATUS_LABELS = {
    "pending": "En attente",
    "confirmed": "Confirmée",
    "completed": "Terminée",
    "cancelled": "Annulée",
    "replied": "Répondue",
    "created_email_failed": "Créée (email échoué)",
    "spam": "Spam",
    "closed": "Clôturée",
    "deleted": "Supprimée",
}

CONSENT_VALUES = {"true", "on", "yes", "1"}


def parse_consent(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in CONSENT_VALUES
    return False


class ReservationBase(BaseModel):
    serviceId: str = Field(..., min_length=1, max_length=36)
    serviceName: str = Field(..., min_length=2, max_length=100)
    serviceCategory: str = Field(..., min_length=2, max_length=50)
    name: str = Field(..., min_length=2, max_length=100)
    email: str
    phone: Optional[str] = Field(None, max_length=30)
    address: str = Field(..., min_length=5, max_length=200)
    date: Date
    frequency: Frequency
    options: Optional[Union[list[str], str]] = None
    message: str = Field(..., min_length=10, max_length=1000)
    consentement: Union[bool, int, str]

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("options")
    @classmethod
    def check_options(cls, v):
        if isinstance(v, str) and v.strip() and not 3 <= len(v.strip()) <= 500:
            raise ValueError("Les options doivent contenir entre 3 et 500 caractères")
        return v

    @field_validator("consentement")
    @classmethod
    def check_consent(cls, v):
        if not parse_consent(v):
            raise ValueError("Le consentement est requis")
        return True


class ReservationCreate(ReservationBase):
    pass


class ReservationUpdate(ReservationBase):
    status: ReservationStatus = "pending"


class ReplyRequest(BaseModel):
    reply: str = Field(..., min_length=10, max_length=2000)

    @field_validator("reply")
    @classmethod
    def strip_reply(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError("La réponse doit contenir au moins 10 caractères")
        return v


class ReservationFilters:
    """Query dependency for the admin list"""

    def __init__(
        self,
        name: Optional[str] = Query(None),
        email: Optional[str] = Query(None),
        status: Optional[ReservationStatus] = Query(None),
        serviceId: Optional[str] = Query(None),
        serviceName: Optional[str] = Query(None),
        serviceCategory: Optional[str] = Query(None),
        frequency: Optional[Frequency] = Query(None),
        dateFrom: Optional[datetime] = Query(None),
        dateTo: Optional[datetime] = Query(None),
        repliedOnly: bool = Query(False),
        hasOptions: Optional[bool] = Query(None),
        sortBy: Literal["createdAt", "name", "email", "status", "repliedAt", "date", "serviceName"] = Query(
            "createdAt"
        ),
        sortOrder: Literal["asc", "desc"] = Query("desc"),
    ):
        self.name = name
        self.email = email
        self.status = status
        self.service_id = serviceId
        self.service_name = serviceName
        self.service_category = serviceCategory
        self.frequency = frequency
        self.date_from = dateFrom
        self.date_to = dateTo
        self.replied_only = repliedOnly
        self.has_options = hasOptions
        self.sort_by = sortBy
        self.sort_order = sortOrder


class ReservationResponse(BaseModel):
    id: str
    userId: Optional[str] = None
    serviceId: str
    serviceName: str
    serviceCategory: str
    name: str
    email: str
    phone: Optional[str] = None
    address: str
    date: str
    frequency: str
    options: Optional[str] = None
    optionsArray: list[str] = []
    optionsCount: int = 0
    optionsPreview: Optional[str] = None
    message: str
    messagePreview: str
    consentement: bool
    consentementAccepted: bool
    status: str
    statusLabel: str
    phoneValid: bool
    emailStatus: Optional[dict] = None
    reply: Optional[str] = None
    repliedAt: Optional[datetime] = None
    errorMessage: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ReservationSummary(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int
    cancelled: int
    withOptions: int
    avgMessageLength: int


class ReservationListResponse(BaseModel):
    reservations: list[ReservationResponse]
    pagination: Pagination
    summary: ReservationSummary
