"""
Notification Service - push (FCM) plus realtime events.
Fan-out helpers log individual delivery failures and keep going.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from .. import firebase
from ..errors import AppError, NotFoundError
from ..models import CatalogService, Contact, Reservation, Review, User
from ..realtime import broadcast_manager, review_room

logger = logging.getLogger(__name__)

FANOUT_LIMIT = 100


async def send_push(db: Session, user_id: str, title: str, body: str, data: Optional[dict] = None) -> bool:
    """
    Push a notification to one user.

    Skipped (returns False) when the user disabled notifications or has no FCM
    token. On success the same notification is emitted as `pushNotification`.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("Utilisateur non trouvé")

    preferences = user.preferences or {}
    token = preferences.get("fcmToken")
    if not preferences.get("notifications", True) or not token:
        logger.info(f"Notifications désactivées ou FCM token manquant for {user_id}")
        return False

    try:
        await asyncio.to_thread(
            firebase.send_push,
            token,
            title,
            body,
            data={"userId": user.id, "timestamp": datetime.now(timezone.utc).isoformat(), **(data or {})},
        )
    except Exception as e:
        logger.error(f"❌ Push notification to {user_id} failed: {e}")
        raise AppError(500, "Erreur serveur lors de l'envoi de la notification push", str(e)) from e

    await broadcast_manager.emit_to_user(user.id, "pushNotification", {"title": title, "body": body})
    logger.info(f"📲 Push sent to {user_id}: {title}")
    return True


async def _push_many(db: Session, users: list[User], title: str, body: str) -> dict:
    result = {"sent": 0, "skipped": 0, "failed": 0}
    for user in users:
        try:
            if await send_push(db, user.id, title, body):
                result["sent"] += 1
            else:
                result["skipped"] += 1
        except AppError as e:
            result["failed"] += 1
            logger.warning(f"⚠️ Push to {user.id} failed: {e.message}")
    return result


async def notify_user(db: Session, user_id: Optional[str], title: str, body: str) -> dict:
    """Best-effort push to a single user (unknown ids count as skipped)"""
    if not user_id:
        return {"sent": 0, "skipped": 1, "failed": 0}
    return await _push_many(db, db.query(User).filter(User.id == user_id).all(), title, body)


def _admins(db: Session) -> list[User]:
    return db.query(User).filter(User.role == "admin").limit(FANOUT_LIMIT).all()


async def notify_admins(db: Session, title: str, body: str, event: str, payload: dict) -> dict:
    result = await _push_many(db, _admins(db), title, body)
    await broadcast_manager.emit_to_admins(event, payload)
    return result


async def notify_new_review(db: Session, review: Review) -> dict:
    service = db.query(CatalogService).filter(CatalogService.id == review.service_id).first()
    if not service:
        raise NotFoundError("Service non trouvé")

    payload = {"reviewId": review.id, "serviceId": review.service_id, "rating": review.rating}
    result = {"sent": 0, "skipped": 0, "failed": 0}
    if service.provider_id:
        result = await _push_many(
            db,
            db.query(User).filter(User.id == service.provider_id).all(),
            "Nouvel avis reçu",
            f"Un nouvel avis a été ajouté à votre service {service.name}.",
        )
        await broadcast_manager.emit_to_user(service.provider_id, "newReview", payload)
    await broadcast_manager.emit_to_room(review_room(review.service_id), "newReview", payload)
    logger.info(f"Notification de nouvel avis envoyée: {review.id}")
    return result


async def notify_user_created(db: Session, user: User) -> dict:
    return await notify_admins(
        db,
        "Nouvel utilisateur créé",
        f"Un nouvel utilisateur a été créé : {user.name}",
        "newUser",
        {"userId": user.id, "name": user.name},
    )


async def notify_new_contact(db: Session, contact: Contact) -> dict:
    return await notify_admins(
        db,
        "Nouveau message de contact",
        f"Nouveau message de {contact.name}: {contact.subjects or contact.message[:50]}",
        "newContact",
        {"contactId": contact.id, "subject": contact.subjects},
    )


async def notify_new_reservation(db: Session, reservation: Reservation) -> dict:
    return await notify_admins(
        db,
        "Nouvelle réservation",
        f"{reservation.name} a demandé : {reservation.service_name} le {reservation.date}",
        "newReservation",
        {"reservationId": reservation.id, "serviceName": reservation.service_name},
    )


async def notify_service_event(db: Session, service: CatalogService, updated: bool = False) -> dict:
    """Push every user (first FANOUT_LIMIT) and broadcast newService/serviceUpdated"""
    if updated:
        title, body, event = "Service mis à jour", f"Le service {service.name} a été mis à jour.", "serviceUpdated"
    else:
        title, body, event = (
            "Nouveau service disponible",
            f"Découvrez notre nouveau service : {service.name}",
            "newService",
        )
    users = db.query(User).order_by(User.created_at).limit(FANOUT_LIMIT).all()
    result = await _push_many(db, users, title, body)
    await broadcast_manager.broadcast(event, {"serviceId": service.id, "title": service.name})
    logger.info(f"Service notification {event} sent for {service.id}")
    return result
