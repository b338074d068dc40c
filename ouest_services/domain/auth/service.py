"""
Auth service - Firebase-backed signup/signin, backend JWTs and the
email code flows (verification, password reset, email change)
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ... import firebase
from ...email_service import send_email_changed_notice, send_signin_link_email
from ...errors import AppError, NotFoundError, UnauthorizedError
from ...models import User, default_preferences, utcnow
from ...realtime import broadcast_manager
from ...security_utils import create_jwt_token, create_scoped_token, mask_email, verify_scoped_token
from ...services import notification_service
from ..challenges.service import (
    EMAIL_CHANGE,
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    CodeChallengeService,
)
from ..users.repository import UserRepository
from ..users.schemas import MIN_FCM_TOKEN_LENGTH
from .schemas import (
    CodeVerificationResponse,
    ConfirmNewEmailRequest,
    SigninRequest,
    SignupRequest,
    UpdatePasswordRequest,
)

logger = logging.getLogger(__name__)

DASHBOARD_REDIRECT = "/dashboard.html"
RESET_PASSWORD_REDIRECT = "/pages/auth/reset-password.html"
CHANGE_EMAIL_REDIRECT = "/pages/auth/change-email.html"

PASSWORD_RESET_SCOPE = "password_reset"
EMAIL_CHANGE_SCOPE = "email_change"


def usable_fcm_token(token: Optional[str]) -> Optional[str]:
    """FCM registration tokens are long; anything shorter is ignored"""
    if isinstance(token, str) and len(token) >= MIN_FCM_TOKEN_LENGTH:
        return token
    return None


class AuthService:
    """Service layer for authentication"""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository()
        self.challenges = CodeChallengeService(db)

    async def _emit_status(self, user_id: str, status: str, message: str) -> None:
        await broadcast_manager.emit_to_user(
            user_id, "authStatus", {"status": status, "userId": user_id, "message": message}
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def signup(self, data: SignupRequest) -> tuple[User, str]:
        decoded = await asyncio.to_thread(firebase.verify_id_token, data.firebaseToken)
        uid = decoded["uid"]
        token_email = (decoded.get("email") or "").lower()
        if token_email and token_email != data.email:
            raise AppError(400, "Email non correspondant au compte Firebase")

        if self.users.get_by_id(self.db, uid):
            raise AppError(409, "Utilisateur déjà existant")
        if self.users.get_by_email(self.db, data.email):
            raise AppError(409, "Email déjà utilisé")

        preferences = default_preferences()
        preferences["fcmToken"] = usable_fcm_token(data.fcmToken)

        user = self.users.create(
            self.db,
            id=uid,
            email=data.email,
            name=data.name,
            phone=data.phone,
            address=data.address.model_dump(exclude_none=True) if data.address else None,
            company=data.company,
            role="client",
            preferences=preferences,
            email_verified=bool(decoded.get("email_verified", False)),
            last_login=utcnow(),
        )

        try:
            await asyncio.to_thread(firebase.ensure_role_claim, uid, user.role)
            token = create_jwt_token(uid, user.role)
            await self._emit_status(uid, "signedUp", "Inscription réussie")
            await self.challenges.issue(EMAIL_VERIFICATION, user.email, name=user.name)
            try:
                await notification_service.send_push(
                    self.db, uid, "Bienvenue !", f"Bienvenue chez L&L Ouest Services, {user.name} !"
                )
            except AppError as e:
                logger.warning(f"⚠️ Welcome push failed for {uid}: {e.message}")
            await notification_service.notify_user_created(self.db, user)
        except Exception as e:
            logger.error(f"❌ Signup failed after profile creation for {uid}, cleaning up: {e}")
            await self._cleanup_failed_signup(uid)
            if isinstance(e, AppError):
                raise
            raise AppError(500, "Erreur serveur lors de l'inscription", str(e)) from e

        logger.info(f"✅ User signed up: {uid} ({mask_email(user.email)})")
        return user, token

    async def _cleanup_failed_signup(self, uid: str) -> None:
        try:
            await asyncio.to_thread(firebase.delete_user, uid)
        except Exception as e:
            logger.error(f"❌ Could not delete Firebase user {uid} during cleanup: {e}")
        self.db.rollback()
        user = self.users.get_by_id(self.db, uid)
        if user:
            self.users.delete(self.db, user)

    async def signin(self, data: SigninRequest) -> tuple[User, str]:
        try:
            decoded = await asyncio.to_thread(firebase.verify_id_token, data.firebaseToken)
            uid = decoded["uid"]
            user = self.users.get_by_id(self.db, uid)
            if not user:
                raise NotFoundError("Utilisateur non trouvé")

            await asyncio.to_thread(firebase.ensure_role_claim, uid, user.role)

            user.last_login = utcnow()
            user.email_verified = bool(user.email_verified or decoded.get("email_verified", False))
            fcm_token = usable_fcm_token(data.fcmToken)
            if fcm_token:
                user.preferences = {**default_preferences(), **(user.preferences or {}), "fcmToken": fcm_token}
            self.db.commit()
            self.db.refresh(user)

            token = create_jwt_token(uid, user.role)
        except AppError:
            raise
        except Exception as e:
            logger.error(f"❌ Signin error: {e}")
            raise AppError(401, "Erreur serveur connexion", str(e)) from e

        await self._emit_status(uid, "signedIn", "Connexion réussie")
        logger.info(f"🔑 User signed in: {uid}")
        return user, token

    async def refresh(self, firebase_token: str) -> tuple[str, str]:
        decoded = await asyncio.to_thread(firebase.verify_id_token, firebase_token)
        uid = decoded["uid"]
        user = self.users.get_by_id(self.db, uid)
        if not user:
            raise NotFoundError("Utilisateur non trouvé")

        try:
            await asyncio.to_thread(firebase.ensure_role_claim, uid, user.role)
        except Exception as e:
            raise AppError(401, "Token Firebase invalide", str(e)) from e

        token = create_jwt_token(uid, user.role)
        await self._emit_status(uid, "tokenRefreshed", "Token rafraîchi")
        logger.info(f"Token refreshed for {uid}")
        return uid, token

    async def signout(self, firebase_token: str) -> str:
        decoded = await asyncio.to_thread(firebase.verify_id_token, firebase_token)
        uid = decoded["uid"]
        if not self.users.get_by_id(self.db, uid):
            logger.warning(f"⚠️ Signout for unknown profile {uid}")

        try:
            await asyncio.to_thread(firebase.revoke_refresh_tokens, uid)
        except Exception as e:
            logger.error(f"❌ Could not revoke tokens for {uid}: {e}")
            raise AppError(500, "Erreur serveur déconnexion", str(e)) from e

        await self._emit_status(uid, "signedOut", "Déconnexion réussie")
        logger.info(f"👋 User signed out: {uid}")
        return uid

    async def verify_token(self, firebase_token: str) -> tuple[User, str]:
        """Exchange a Firebase token for a backend JWT, creating a minimal profile if missing"""
        decoded = await asyncio.to_thread(firebase.verify_id_token, firebase_token)
        uid = decoded["uid"]
        email = (decoded.get("email") or "").lower()

        user = self.users.get_by_id(self.db, uid)
        if not user:
            logger.warning(f"⚠️ Firebase user {uid} missing from database, syncing")
            if not email:
                raise AppError(400, "Token Firebase sans email")
            if self.users.get_by_email(self.db, email):
                raise AppError(409, "Email déjà associé à un autre utilisateur - Conflit de synchronisation")
            user = self.users.create(
                self.db,
                id=uid,
                email=email,
                name=decoded.get("name") or "Utilisateur Anonyme",
                phone=decoded.get("phone_number") or None,
                role="client",
                preferences=default_preferences(),
                email_verified=bool(decoded.get("email_verified", False)),
                last_login=utcnow(),
            )
            logger.info(f"✅ Profile synced for {uid}")

        await asyncio.to_thread(firebase.ensure_role_claim, uid, user.role)
        return user, create_jwt_token(uid, user.role)

    # ------------------------------------------------------------------
    # Code flows
    # ------------------------------------------------------------------

    def _display_name(self, email: str, name: Optional[str]) -> str:
        if name:
            return name
        user = self.users.get_by_email(self.db, email)
        return user.name if user else "Utilisateur"

    async def send_email_verification(self, email: str, name: Optional[str] = None) -> None:
        await self.challenges.issue(EMAIL_VERIFICATION, email, name=self._display_name(email, name))

    async def send_password_reset(self, email: str, name: Optional[str] = None) -> None:
        await self.challenges.issue(PASSWORD_RESET, email, name=self._display_name(email, name))

    async def request_new_email(self, user: User) -> None:
        """Step 1 of an email change: prove ownership of the current address"""
        await self.challenges.issue(
            EMAIL_CHANGE, user.email, name=user.name, payload={"current_email": user.email}
        )

    async def confirm_new_email(self, user: User, data: ConfirmNewEmailRequest) -> None:
        """Step 2 of an email change: send a code to the new address"""
        if verify_scoped_token(data.changeToken, EMAIL_CHANGE_SCOPE) != user.email:
            raise UnauthorizedError("Vérifiez d'abord votre adresse email actuelle")
        if data.newEmail == user.email:
            raise AppError(400, "La nouvelle adresse est identique à l'actuelle")
        if self.users.get_by_email(self.db, data.newEmail):
            raise AppError(409, "Email déjà utilisé")

        await self.challenges.issue(
            EMAIL_CHANGE,
            data.newEmail,
            name=user.name,
            payload={"current_email": user.email, "new_email": data.newEmail},
        )

    async def verify_email_code(self, email: str, code: str) -> CodeVerificationResponse:
        outcome = await self.challenges.verify(EMAIL_VERIFICATION, email, code)
        if not outcome.success:
            return CodeVerificationResponse(**outcome.as_response())

        user = self.users.get_by_email(self.db, email)
        if user:
            self.users.update(self.db, user, email_verified=True)
            await asyncio.to_thread(firebase.update_user, user.id, email_verified=True)
            await self._emit_status(user.id, "emailVerified", "Email vérifié")

        return CodeVerificationResponse(success=True, message="Email vérifié", redirect=DASHBOARD_REDIRECT)

    async def verify_password_reset_code(self, email: str, code: str) -> CodeVerificationResponse:
        outcome = await self.challenges.verify(PASSWORD_RESET, email, code)
        if not outcome.success:
            return CodeVerificationResponse(**outcome.as_response())

        return CodeVerificationResponse(
            success=True,
            message="Code vérifié",
            redirect=RESET_PASSWORD_REDIRECT,
            resetToken=create_scoped_token(email.strip().lower(), PASSWORD_RESET_SCOPE),
        )

    async def verify_change_email_code(self, email: str, code: str) -> CodeVerificationResponse:
        outcome = await self.challenges.verify(EMAIL_CHANGE, email, code, consume=False)
        if not outcome.success:
            return CodeVerificationResponse(**outcome.as_response())

        current_email = outcome.payload.get("current_email")
        new_email = outcome.payload.get("new_email")

        if current_email and not new_email:
            self.challenges.consume(EMAIL_CHANGE, email)
            return CodeVerificationResponse(
                success=True,
                message="Adresse actuelle vérifiée",
                redirect=CHANGE_EMAIL_REDIRECT,
                changeToken=create_scoped_token(current_email, EMAIL_CHANGE_SCOPE),
            )

        if not (current_email and new_email):
            self.challenges.consume(EMAIL_CHANGE, email)
            raise AppError(400, "Données de changement d'email invalides")

        done = CodeVerificationResponse(success=True, message="Email mis à jour", redirect=DASHBOARD_REDIRECT)
        user = self.users.get_by_email(self.db, current_email)
        if not user:
            self.challenges.consume(EMAIL_CHANGE, email)
            return done

        # The code stays valid while the new address is taken
        if self.users.get_by_email(self.db, new_email):
            raise AppError(409, "Email déjà utilisé")

        await asyncio.to_thread(firebase.update_user, user.id, email=new_email, email_verified=True)
        self.users.update(self.db, user, email=new_email, email_verified=True)
        self.challenges.consume(EMAIL_CHANGE, email)
        try:
            await send_email_changed_notice(current_email, user.name, new_email)
        except Exception as e:
            logger.error(f"❌ Could not notify {mask_email(current_email)} of email change: {e}")
        await self._emit_status(user.id, "emailChanged", "Email mis à jour")
        logger.info(f"📧 Email changed {mask_email(current_email)} -> {mask_email(new_email)}")
        return done

    async def update_password(self, data: UpdatePasswordRequest) -> None:
        if verify_scoped_token(data.resetToken, PASSWORD_RESET_SCOPE) != data.email:
            raise UnauthorizedError("Autorisation de réinitialisation invalide ou expirée")

        try:
            record = await asyncio.to_thread(firebase.get_user_by_email, data.email)
        except Exception as e:
            raise NotFoundError("Utilisateur non trouvé", str(e)) from e

        user = self.users.get_by_id(self.db, record.uid)
        if not user:
            raise NotFoundError("Utilisateur non trouvé")
        if user.email != data.email:
            raise AppError(400, "Email non correspondant")

        try:
            await asyncio.to_thread(firebase.update_user, user.id, password=data.newPassword)
        except Exception as e:
            logger.error(f"❌ Firebase password update failed for {user.id}: {e}")
            raise AppError(500, "Erreur serveur lors de la mise à jour du mot de passe", str(e)) from e

        await self._emit_status(user.id, "passwordUpdated", "Mot de passe mis à jour avec succès")
        logger.info(f"🔐 Password updated for {user.id}")

    async def send_signin_link(self, email: str, name: Optional[str] = None) -> None:
        try:
            link = await asyncio.to_thread(firebase.generate_signin_link, email)
            await send_signin_link_email(email, self._display_name(email, name), link)
        except Exception as e:
            logger.error(f"❌ Sign-in link email failed for {mask_email(email)}: {e}")
            raise AppError(500, "Erreur serveur lors de l'envoi de l'email de connexion", str(e)) from e
        logger.info(f"Sign-in link sent to {mask_email(email)}")
