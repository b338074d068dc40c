"""Review schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Review
from ...shared.pagination import Pagination

MAX_REVIEW_IMAGES = 5


class ReviewCreate(BaseModel):
    serviceId: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=500)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=10, max_length=500)


class ReviewImage(BaseModel):
    url: str
    fileKey: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    userId: str
    serviceId: str
    rating: int
    comment: str
    images: list[ReviewImage] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            userId=review.user_id,
            serviceId=review.service_id,
            rating=review.rating,
            comment=review.comment,
            images=review.images or [],
            createdAt=review.created_at,
            updatedAt=review.updated_at,
        )


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    pagination: Pagination
