"""Invoice document schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Invoice
from ...shared.pagination import Pagination


class InvoiceItem(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(1, gt=0)
    unitPrice: float = Field(..., ge=0)


class InvoiceGenerateRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    items: list[InvoiceItem] = Field(default_factory=list, max_length=100)
    dueDate: Optional[datetime] = None


class InvoiceUpdateRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    items: Optional[list[InvoiceItem]] = Field(None, max_length=100)
    dueDate: Optional[datetime] = None
    status: Optional[str] = Field(None, pattern=r"^(issued|paid|cancelled|recorded)$")


class InvoiceResponse(BaseModel):
    id: str
    userId: str
    amount: float
    items: list[InvoiceItem] = []
    dueDate: Optional[datetime] = None
    url: Optional[str] = None
    fileKey: Optional[str] = None
    status: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            userId=invoice.user_id,
            amount=invoice.amount,
            items=invoice.items or [],
            dueDate=invoice.due_date,
            url=invoice.url,
            fileKey=invoice.file_key,
            status=invoice.status,
            createdAt=invoice.created_at,
            updatedAt=invoice.updated_at,
        )


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    pagination: Pagination
