"""
Pending code challenge - the one-shot email code flow shared by
email verification, password reset and email change.

issue():  generate a code, store it for (purpose, email), email it.
verify(): unknown key or wrong code → 400; expired → rotate, resend and
          report failure with a redirect; match → consume and report success.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import CODE_TTL_MINUTES
from ...email_service import send_code_email
from ...errors import AppError, provider_error_status
from ...models import PendingCode, utcnow
from ...security_utils import constant_time_compare, generate_numeric_code, mask_email
from .repository import PendingCodeRepository

logger = logging.getLogger(__name__)

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"
EMAIL_CHANGE = "email_change"
PURPOSES = (EMAIL_VERIFICATION, PASSWORD_RESET, EMAIL_CHANGE)

CODE_CHECK_REDIRECT = "/pages/auth/code-check.html"

INVALID_MESSAGES = {
    EMAIL_VERIFICATION: "Code de vérification invalide",
    PASSWORD_RESET: "Code de réinitialisation invalide",
    EMAIL_CHANGE: "Code de changement d'email invalide",
}

EXPIRED_MESSAGES = {
    EMAIL_VERIFICATION: "Code de vérification expiré. Un nouveau code a été envoyé.",
    PASSWORD_RESET: "Code de réinitialisation expiré. Un nouveau code a été envoyé.",
    EMAIL_CHANGE: "Code de changement d'email expiré. Un nouveau code a été envoyé.",
}


@dataclass
class ChallengeOutcome:
    success: bool
    message: str
    redirect: Optional[str] = None
    payload: dict = field(default_factory=dict)

    def as_response(self) -> dict:
        body = {"success": self.success, "message": self.message}
        if self.redirect:
            body["redirect"] = self.redirect
        return body


def template_kind(purpose: str, payload: dict) -> str:
    if purpose == EMAIL_CHANGE:
        return "email_change_new" if payload.get("new_email") else "email_change_current"
    return purpose


class CodeChallengeService:
    """Issue and verify one-shot email codes keyed by (purpose, email)"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PendingCodeRepository()

    async def _deliver(self, row: PendingCode) -> None:
        payload = row.payload or {}
        try:
            await send_code_email(
                to=row.email,
                kind=template_kind(row.purpose, payload),
                name=payload.get("name") or "Utilisateur",
                code=row.code,
                ttl_minutes=CODE_TTL_MINUTES,
            )
        except Exception as e:
            status = provider_error_status(e)
            message = (
                "Trop de tentatives d'envoi d'email, veuillez réessayer plus tard."
                if status == 429
                else "Erreur serveur lors de l'envoi de l'email."
            )
            logger.error(f"❌ Failed to deliver {row.purpose} code to {mask_email(row.email)}: {e}")
            raise AppError(status, message, str(e)) from e

    async def issue(
        self,
        purpose: str,
        email: str,
        name: Optional[str] = None,
        retry: bool = False,
        payload: Optional[dict] = None,
    ) -> PendingCode:
        """Store a fresh code for (purpose, email), replacing any previous one, and email it"""
        if purpose not in PURPOSES:
            raise ValueError(f"Unknown code purpose: {purpose}")

        email = email.strip().lower()
        data = dict(payload or {})
        if name:
            data["name"] = name

        row = self.repo.upsert(
            self.db,
            purpose=purpose,
            email=email,
            code=generate_numeric_code(),
            expires_at=utcnow() + timedelta(minutes=CODE_TTL_MINUTES),
            retry=retry,
            payload=data,
        )
        await self._deliver(row)
        logger.info(f"🔐 {purpose} code issued for {mask_email(email)} (retry={retry})")
        return row

    async def verify(self, purpose: str, email: str, code: str, consume: bool = True) -> ChallengeOutcome:
        """Check a code; with consume=False a match leaves the row for a later consume()"""
        email = email.strip().lower()
        row = self.repo.get(self.db, purpose, email)
        if row is None:
            logger.warning(f"⚠️ No pending {purpose} code for {mask_email(email)}")
            raise AppError(400, INVALID_MESSAGES[purpose])

        if row.expires_at < utcnow():
            payload = dict(row.payload or {})
            await self.issue(purpose, email, retry=True, payload=payload)
            logger.info(f"🔁 Expired {purpose} code rotated for {mask_email(email)}")
            return ChallengeOutcome(
                success=False,
                message=EXPIRED_MESSAGES[purpose],
                redirect=CODE_CHECK_REDIRECT,
                payload=payload,
            )

        if not constant_time_compare(row.code, code.strip()):
            logger.warning(f"⚠️ Wrong {purpose} code for {mask_email(email)}")
            raise AppError(400, INVALID_MESSAGES[purpose])

        payload = dict(row.payload or {})
        if consume:
            self.repo.delete(self.db, row)
        logger.info(f"✅ {purpose} code verified for {mask_email(email)}")
        return ChallengeOutcome(success=True, message="Code vérifié", payload=payload)

    def consume(self, purpose: str, email: str) -> None:
        row = self.repo.get(self.db, purpose, email.strip().lower())
        if row is not None:
            self.repo.delete(self.db, row)
