"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_by_id(db: Session, review_id: str) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def create(db: Session, **data) -> Review:
        review = Review(**data)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def update(db: Session, review: Review, **updates) -> Review:
        for key, value in updates.items():
            if value is not None and hasattr(review, key):
                setattr(review, key, value)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def delete(db: Session, review: Review) -> None:
        db.delete(review)
        db.commit()

    @staticmethod
    def _page(query, page: int, limit: int) -> tuple[list[Review], int]:
        total = query.count()
        reviews = query.order_by(Review.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return reviews, total

    @staticmethod
    def list_for_service(db: Session, service_id: str, page: int, limit: int) -> tuple[list[Review], int]:
        return ReviewRepository._page(db.query(Review).filter(Review.service_id == service_id), page, limit)

    @staticmethod
    def list_for_user(db: Session, user_id: str, page: int, limit: int) -> tuple[list[Review], int]:
        return ReviewRepository._page(db.query(Review).filter(Review.user_id == user_id), page, limit)
