"""Review service - ratings, comments and review photos"""

import asyncio
import logging

from sqlalchemy.orm import Session

from ...auth import ensure_owner_or_admin
from ...errors import AppError, NotFoundError
from ...models import CatalogService, Review, User
from ...realtime import broadcast_manager, review_room
from ...security_utils import sanitize_text
from ...services import notification_service, storage_service
from ...shared.pagination import build_pagination
from .repository import ReviewRepository
from .schemas import MAX_REVIEW_IMAGES, ReviewCreate, ReviewListResponse, ReviewResponse, ReviewUpdate

logger = logging.getLogger(__name__)


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()

    def _service(self, service_id: str) -> CatalogService:
        service = self.db.query(CatalogService).filter(CatalogService.id == service_id).first()
        if not service:
            raise NotFoundError("Service non trouvé")
        return service

    def get(self, review_id: str) -> Review:
        review = self.repo.get_by_id(self.db, review_id)
        if not review:
            raise NotFoundError("Avis non trouvé")
        return review

    def _get_for(self, user: User, review_id: str) -> Review:
        review = self.get(review_id)
        ensure_owner_or_admin(user, review.user_id)
        return review

    async def create(self, user: User, data: ReviewCreate) -> Review:
        self._service(data.serviceId)
        review = self.repo.create(
            self.db,
            user_id=user.id,
            service_id=data.serviceId,
            rating=data.rating,
            comment=sanitize_text(data.comment),
            images=[],
        )
        logger.info(f"⭐ Review {review.id} created by {user.id} on {review.service_id}")
        await notification_service.notify_new_review(self.db, review)
        return review

    async def update(self, user: User, review_id: str, data: ReviewUpdate) -> Review:
        review = self._get_for(user, review_id)
        updated = self.repo.update(self.db, review, rating=data.rating, comment=sanitize_text(data.comment))

        service = self._service(updated.service_id)
        payload = {"reviewId": updated.id, "serviceId": updated.service_id}
        await broadcast_manager.emit_to_room(review_room(updated.service_id), "reviewUpdated", payload)
        await notification_service.notify_user(
            self.db,
            service.provider_id,
            "Avis mis à jour",
            f'Un avis pour votre service "{service.name}" a été mis à jour.',
        )
        return updated

    async def delete(self, user: User, review_id: str) -> dict:
        review = self._get_for(user, review_id)
        service_id = review.service_id
        file_keys = [image.get("fileKey") for image in (review.images or [])]
        await asyncio.to_thread(storage_service.delete_files_quietly, file_keys)
        self.repo.delete(self.db, review)

        await broadcast_manager.emit_to_room(
            review_room(service_id), "reviewDeleted", {"reviewId": review_id, "serviceId": service_id}
        )
        service = self.db.query(CatalogService).filter(CatalogService.id == service_id).first()
        if service:
            await notification_service.notify_user(
                self.db,
                service.provider_id,
                "Avis supprimé",
                f'Un avis pour votre service "{service.name}" a été supprimé.',
            )
        logger.info(f"🗑️ Review {review_id} deleted by {user.id}")
        return {"message": "Avis supprimé", "reviewId": review_id}

    def list_for_service(self, service_id: str, page: int, limit: int) -> ReviewListResponse:
        self._service(service_id)
        reviews, total = self.repo.list_for_service(self.db, service_id, page, limit)
        return ReviewListResponse(
            reviews=[ReviewResponse.from_review(r) for r in reviews],
            pagination=build_pagination(page, limit, total),
        )

    def list_for_user(self, user: User, page: int, limit: int) -> ReviewListResponse:
        reviews, total = self.repo.list_for_user(self.db, user.id, page, limit)
        return ReviewListResponse(
            reviews=[ReviewResponse.from_review(r) for r in reviews],
            pagination=build_pagination(page, limit, total),
        )

    async def add_image(self, user: User, review_id: str, data: bytes, filename: str) -> Review:
        review = self._get_for(user, review_id)
        if len(review.images or []) >= MAX_REVIEW_IMAGES:
            raise AppError(400, f"Nombre maximum d'images atteint ({MAX_REVIEW_IMAGES})")

        content_type = storage_service.validate_image_upload(filename, len(data))
        image = await asyncio.to_thread(
            storage_service.upload_file, data, filename, f"reviews/{review.id}", content_type
        )
        review.images = [*(review.images or []), image]
        self.db.commit()
        self.db.refresh(review)

        await broadcast_manager.emit_to_room(
            review_room(review.service_id), "reviewUpdated", {"reviewId": review.id, "serviceId": review.service_id}
        )
        return review

    async def remove_image(self, user: User, review_id: str, file_url: str) -> Review:
        review = self._get_for(user, review_id)
        image = next((i for i in (review.images or []) if i.get("url") == file_url), None)
        if not image:
            raise NotFoundError("Image non trouvée pour cet avis")

        if image.get("fileKey"):
            try:
                await asyncio.to_thread(storage_service.delete_file, image["fileKey"])
            except NotFoundError:
                logger.warning(f"⚠️ Review image already gone: {image['fileKey']}")
        review.images = [i for i in review.images if i.get("url") != file_url]
        self.db.commit()
        self.db.refresh(review)
        return review
