"""Catalog service - offered services and their images"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import AppError, NotFoundError
from ...models import CatalogService, User
from ...realtime import broadcast_manager
from ...security_utils import sanitize_text
from ...services import notification_service, storage_service
from ...shared.pagination import build_pagination
from .repository import CatalogRepository
from .schemas import MAX_SERVICE_IMAGES, ServiceCreate, ServiceListResponse, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogServiceManager:
    """Service layer for the public catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get(self, service_id: str) -> CatalogService:
        service = self.repo.get_by_id(self.db, service_id)
        if not service:
            raise NotFoundError("Service non trouvé")
        return service

    def _check_provider(self, provider_id: Optional[str]) -> None:
        if provider_id and not self.db.query(User).filter(User.id == provider_id).first():
            raise NotFoundError("Fournisseur non trouvé")

    async def create(self, data: ServiceCreate) -> CatalogService:
        self._check_provider(data.providerId)
        service = self.repo.create(
            self.db,
            name=sanitize_text(data.name),
            description=sanitize_text(data.description),
            price=data.price,
            area=data.area,
            duration=data.duration,
            category=data.category,
            availability=data.availability,
            location=data.location,
            provider_id=data.providerId,
            images=[],
        )
        logger.info(f"🧽 Service created: {service.id} ({service.name})")
        await notification_service.notify_service_event(self.db, service, updated=False)
        return service

    async def update(self, service_id: str, data: ServiceUpdate) -> CatalogService:
        service = self.get(service_id)
        self._check_provider(data.providerId)
        updated = self.repo.update(
            self.db,
            service,
            name=sanitize_text(data.name),
            description=sanitize_text(data.description),
            price=data.price,
            area=data.area,
            duration=data.duration,
            category=data.category,
            availability=data.availability,
            location=data.location,
            provider_id=data.providerId,
        )
        await notification_service.notify_service_event(self.db, updated, updated=True)
        return updated

    async def delete(self, service_id: str) -> dict:
        """Delete the service, its reviews and every stored image"""
        service = self.get(service_id)
        keys = [image.get("fileKey") for image in (service.images or [])]
        keys += self.repo.review_file_keys(self.db, service_id)
        await asyncio.to_thread(storage_service.delete_files_quietly, keys)
        self.repo.delete(self.db, service)
        await broadcast_manager.broadcast("serviceDeleted", {"serviceId": service_id})
        logger.info(f"🗑️ Service deleted: {service_id}")
        return {"message": "Service supprimé", "serviceId": service_id}

    def list_services(self, page: int, limit: int, category: Optional[str] = None) -> ServiceListResponse:
        services, total = self.repo.list_services(self.db, page, limit, category)
        return ServiceListResponse(
            services=[ServiceResponse.from_service(s) for s in services],
            pagination=build_pagination(page, limit, total),
        )

    async def add_image(self, service_id: str, data: bytes, filename: str) -> CatalogService:
        service = self.get(service_id)
        if len(service.images or []) >= MAX_SERVICE_IMAGES:
            raise AppError(400, f"Nombre maximum d'images atteint ({MAX_SERVICE_IMAGES})")

        content_type = storage_service.validate_image_upload(filename, len(data))
        image = await asyncio.to_thread(
            storage_service.upload_file, data, filename, f"services/{service.id}", content_type
        )
        service.images = [*(service.images or []), image]
        self.db.commit()
        self.db.refresh(service)

        await notification_service.notify_user(
            self.db,
            service.provider_id,
            "Nouvelle image ajoutée",
            f'Une nouvelle image a été ajoutée à votre service "{service.name}".',
        )
        return service

    async def remove_image(self, service_id: str, file_url: str) -> CatalogService:
        service = self.get(service_id)
        image = next((i for i in (service.images or []) if i.get("url") == file_url), None)
        if not image:
            raise NotFoundError("Image non trouvée pour ce service")

        if image.get("fileKey"):
            try:
                await asyncio.to_thread(storage_service.delete_file, image["fileKey"])
            except NotFoundError:
                logger.warning(f"⚠️ Service image already gone: {image['fileKey']}")
        service.images = [i for i in service.images if i.get("url") != file_url]
        self.db.commit()
        self.db.refresh(service)

        await notification_service.notify_user(
            self.db,
            service.provider_id,
            "Image supprimée",
            f'Une image a été supprimée de votre service "{service.name}".',
        )
        return service
