"""Notification router - admin triggers for push and realtime fan-outs"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...errors import NotFoundError
from ...models import CatalogService, Contact, Review, User
from ...services import notification_service
from .schemas import FanoutResponse, PushRequest, PushResponse, ResourceRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _load(db: Session, model, resource_id: str, label: str):
    instance = db.query(model).filter(model.id == resource_id).first()
    if not instance:
        raise NotFoundError(f"{label} non trouvé")
    return instance


@router.post("/push", response_model=PushResponse)
async def send_push_notification(
    data: PushRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    sent = await notification_service.send_push(db, data.userId, data.title, data.body, data.data)
    message = "Notification envoyée" if sent else "Notifications désactivées ou token FCM manquant"
    return PushResponse(sent=sent, message=message)


@router.post("/review", response_model=FanoutResponse)
async def notify_new_review(
    data: ResourceRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    review = _load(db, Review, data.id, "Avis")
    return await notification_service.notify_new_review(db, review)


@router.post("/user", response_model=FanoutResponse)
async def notify_user_created(
    data: ResourceRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _load(db, User, data.id, "Utilisateur")
    return await notification_service.notify_user_created(db, user)


@router.post("/contact", response_model=FanoutResponse)
async def notify_new_contact(
    data: ResourceRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    contact = _load(db, Contact, data.id, "Message de contact")
    return await notification_service.notify_new_contact(db, contact)


@router.post("/service", response_model=FanoutResponse)
async def notify_new_service(
    data: ResourceRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = _load(db, CatalogService, data.id, "Service")
    return await notification_service.notify_service_event(db, service, updated=False)


@router.post("/service/update", response_model=FanoutResponse)
async def notify_service_update(
    data: ResourceRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = _load(db, CatalogService, data.id, "Service")
    return await notification_service.notify_service_event(db, service, updated=True)
