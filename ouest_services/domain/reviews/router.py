"""Review router - FastAPI endpoints for service reviews"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.pagination import PageParams
from .schemas import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewUpdate
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ReviewResponse.from_review(await service.create(current_user, data))


@router.get("/mine", response_model=ReviewListResponse)
async def list_own_reviews(
    params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.list_for_user(current_user, params.page, params.limit)


@router.get("/service/{service_id}", response_model=ReviewListResponse)
async def list_service_reviews(
    service_id: str,
    params: PageParams = Depends(),
    service: ReviewService = Depends(get_review_service),
):
    return service.list_for_service(service_id, params.page, params.limit)


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(review_id: str, service: ReviewService = Depends(get_review_service)):
    return ReviewResponse.from_review(service.get(review_id))


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: str,
    data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ReviewResponse.from_review(await service.update(current_user, review_id, data))


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.delete(current_user, review_id)


# ============================================================================
# IMAGES
# ============================================================================


@router.post("/{review_id}/images", response_model=ReviewResponse)
async def upload_review_image(
    review_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    contents = await file.read()
    review = await service.add_image(current_user, review_id, contents, file.filename or "")
    return ReviewResponse.from_review(review)


@router.delete("/{review_id}/images", response_model=ReviewResponse)
async def delete_review_image(
    review_id: str,
    fileUrl: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ReviewResponse.from_review(await service.remove_image(current_user, review_id, fileUrl))
