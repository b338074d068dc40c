"""Document router - invoice generation and retrieval"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...shared.pagination import PageParams
from .schemas import InvoiceGenerateRequest, InvoiceListResponse, InvoiceResponse, InvoiceUpdateRequest
from .service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Dependency injection for DocumentService"""
    return DocumentService(db)


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def generate_invoice(
    data: InvoiceGenerateRequest,
    _: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    return InvoiceResponse.from_invoice(await service.generate(data))


@router.get("/invoices/user/{user_id}", response_model=InvoiceListResponse)
async def list_user_invoices(
    user_id: str,
    params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.list_for_user(current_user, user_id, params.page, params.limit)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return InvoiceResponse.from_invoice(service.get(current_user, invoice_id))


@router.put("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    data: InvoiceUpdateRequest,
    _: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    return InvoiceResponse.from_invoice(await service.update(invoice_id, data))


@router.delete("/invoices/{invoice_id}")
async def delete_invoice(
    invoice_id: str,
    _: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
):
    return await service.delete(invoice_id)
