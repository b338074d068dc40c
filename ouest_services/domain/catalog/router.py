"""Catalog router - public service listing plus admin management"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...shared.pagination import PageParams
from .schemas import Category, ServiceCreate, ServiceListResponse, ServiceResponse, ServiceUpdate
from .service import CatalogServiceManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogServiceManager:
    """Dependency injection for CatalogServiceManager"""
    return CatalogServiceManager(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=ServiceListResponse)
async def list_services(
    params: PageParams = Depends(),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return manager.list_services(params.page, params.limit)


@router.get("/category/{category}", response_model=ServiceListResponse)
async def list_services_by_category(
    category: Category,
    params: PageParams = Depends(),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return manager.list_services(params.page, params.limit, category=category)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: str, manager: CatalogServiceManager = Depends(get_catalog_service)):
    return ServiceResponse.from_service(manager.get(service_id))


# ============================================================================
# ADMIN
# ============================================================================


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    _: User = Depends(require_admin),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return ServiceResponse.from_service(await manager.create(data))


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    _: User = Depends(require_admin),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return ServiceResponse.from_service(await manager.update(service_id, data))


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    _: User = Depends(require_admin),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return await manager.delete(service_id)


@router.post("/{service_id}/images", response_model=ServiceResponse)
async def upload_service_image(
    service_id: str,
    file: UploadFile = File(...),
    _: User = Depends(require_admin),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    contents = await file.read()
    return ServiceResponse.from_service(await manager.add_image(service_id, contents, file.filename or ""))


@router.delete("/{service_id}/images", response_model=ServiceResponse)
async def delete_service_image(
    service_id: str,
    fileUrl: str = Query(..., min_length=1),
    _: User = Depends(require_admin),
    manager: CatalogServiceManager = Depends(get_catalog_service),
):
    return ServiceResponse.from_service(await manager.remove_image(service_id, fileUrl))
