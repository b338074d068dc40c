"""Reservation repository - Database operations for reservations"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Reservation, naive_utc

SORT_COLUMNS = {
    "createdAt": Reservation.created_at,
    "name": Reservation.name,
    "email": Reservation.email,
    "status": Reservation.status,
    "repliedAt": Reservation.replied_at,
    "date": Reservation.date,
    "serviceName": Reservation.service_name,
}


class ReservationRepository:
    """Repository for reservation database operations"""

    @staticmethod
    def get_by_id(db: Session, reservation_id: str) -> Optional[Reservation]:
        return db.query(Reservation).filter(Reservation.id == reservation_id).first()

    @staticmethod
    def create(db: Session, **data) -> Reservation:
        reservation = Reservation(**data)
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    @staticmethod
    def update(db: Session, reservation: Reservation, **updates) -> Reservation:
        for key, value in updates.items():
            if hasattr(reservation, key):
                setattr(reservation, key, value)
        db.commit()
        db.refresh(reservation)
        return reservation

    @staticmethod
    def filtered_query(db: Session, filters):
        query = db.query(Reservation)
        if filters.name:
            query = query.filter(Reservation.name.ilike(f"%{filters.name}%"))
        if filters.email:
            query = query.filter(func.lower(Reservation.email) == filters.email.strip().lower())
        if filters.status:
            query = query.filter(Reservation.status == filters.status)
        if filters.service_id:
            query = query.filter(Reservation.service_id == filters.service_id)
        if filters.service_name:
            query = query.filter(Reservation.service_name.ilike(f"%{filters.service_name}%"))
        if filters.service_category:
            query = query.filter(Reservation.service_category == filters.service_category)
        if filters.frequency:
            query = query.filter(Reservation.frequency == filters.frequency)
        if filters.date_from:
            query = query.filter(Reservation.created_at >= naive_utc(filters.date_from))
        if filters.date_to:
            query = query.filter(Reservation.created_at <= naive_utc(filters.date_to))
        if filters.replied_only:
            query = query.filter(Reservation.replied_at.isnot(None))
        if filters.has_options is True:
            query = query.filter(Reservation.options.isnot(None), Reservation.options != "")
        elif filters.has_options is False:
            query = query.filter((Reservation.options.is_(None)) | (Reservation.options == ""))
        return query

    @staticmethod
    def list_reservations(db: Session, filters, page: int, limit: int) -> tuple[list[Reservation], int]:
        query = ReservationRepository.filtered_query(db, filters)
        total = query.count()
        column = SORT_COLUMNS[filters.sort_by]
        order = column.asc() if filters.sort_order == "asc" else column.desc()
        items = query.order_by(order).offset((page - 1) * limit).limit(limit).all()
        return items, total

    @staticmethod
    def summary(db: Session, filters) -> dict:
        """Status counts and message stats over the whole filtered set"""
        query = ReservationRepository.filtered_query(db, filters)
        counts = dict(
            query.with_entities(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status).all()
        )
        with_options = query.filter(Reservation.options.isnot(None), Reservation.options != "").count()
        avg_length = query.with_entities(func.avg(func.length(Reservation.message))).scalar()
        return {
            "total": sum(counts.values()),
            "pending": counts.get("pending", 0),
            "confirmed": counts.get("confirmed", 0),
            "completed": counts.get("completed", 0),
            "cancelled": counts.get("cancelled", 0),
            "withOptions": with_options,
            "avgMessageLength": round(avg_length or 0),
        }
