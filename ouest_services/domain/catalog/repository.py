"""Catalog repository - Database operations for offered services"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import CatalogService, Review


class CatalogRepository:
    """Repository for catalog service database operations"""

    @staticmethod
    def get_by_id(db: Session, service_id: str) -> Optional[CatalogService]:
        return db.query(CatalogService).filter(CatalogService.id == service_id).first()

    @staticmethod
    def create(db: Session, **data) -> CatalogService:
        service = CatalogService(**data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update(db: Session, service: CatalogService, **updates) -> CatalogService:
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete(db: Session, service: CatalogService) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def list_services(
        db: Session, page: int, limit: int, category: Optional[str] = None
    ) -> tuple[list[CatalogService], int]:
        query = db.query(CatalogService)
        if category:
            query = query.filter(CatalogService.category == category)
        total = query.count()
        services = query.order_by(CatalogService.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return services, total

    @staticmethod
    def review_file_keys(db: Session, service_id: str) -> list[str]:
        rows = db.query(Review.images).filter(Review.service_id == service_id).all()
        return [image.get("fileKey") for (images,) in rows for image in (images or []) if image.get("fileKey")]
