"""Pending code repository - one row per (purpose, email)"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import PendingCode


class PendingCodeRepository:
    """Repository for pending code database operations"""

    @staticmethod
    def get(db: Session, purpose: str, email: str) -> Optional[PendingCode]:
        return (
            db.query(PendingCode)
            .filter(PendingCode.purpose == purpose, PendingCode.email == email)
            .first()
        )

    @staticmethod
    def upsert(
        db: Session,
        purpose: str,
        email: str,
        code: str,
        expires_at: datetime,
        retry: bool,
        payload: dict,
    ) -> PendingCode:
        """Insert or overwrite the code for (purpose, email); last write wins"""
        for _ in range(2):
            row = PendingCodeRepository.get(db, purpose, email)
            if row is None:
                row = PendingCode(purpose=purpose, email=email)
                db.add(row)
            row.code = code
            row.expires_at = expires_at
            row.retry = retry
            row.payload = dict(payload)
            try:
                db.commit()
                db.refresh(row)
                return row
            except IntegrityError:
                # Concurrent insert for the same key; retry as an update
                db.rollback()
        raise RuntimeError(f"Could not store code for {purpose}:{email}")

    @staticmethod
    def delete(db: Session, row: PendingCode) -> None:
        db.delete(row)
        db.commit()

    @staticmethod
    def delete_expired(db: Session, now: datetime) -> int:
        count = db.query(PendingCode).filter(PendingCode.expires_at < now).delete()
        db.commit()
        return count
