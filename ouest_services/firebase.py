"""
Firebase Admin wrappers.

All identity provider and FCM calls go through here so they share one app
initialization and the same fixed-count retry policy.
"""

import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from .config import FIREBASE_CREDENTIALS_PATH, FIREBASE_PROJECT_ID, FRONTEND_URL
from .errors import AppError, UnauthorizedError, provider_error_status
from .shared.retry import with_retries

logger = logging.getLogger(__name__)

# Client errors: retrying cannot change the answer
NO_RETRY = (
    ValueError,
    firebase_exceptions.InvalidArgumentError,
    firebase_exceptions.NotFoundError,
    firebase_exceptions.AlreadyExistsError,
)


def get_app() -> firebase_admin.App:
    """Initialize Firebase Admin SDK (only once)"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    try:
        if FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
        else:
            cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
        logger.info("Firebase Admin initialized with credentials")
    except Exception:
        # Initialize without credentials (limited functionality)
        app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
        logger.info("Firebase Admin initialized with project ID only")
    return app


def verify_id_token(id_token: str) -> dict:
    """Verify a Firebase ID token (revocation checked). Raises 401 when invalid."""
    try:
        return with_retries(
            firebase_auth.verify_id_token,
            id_token,
            app=get_app(),
            check_revoked=True,
            no_retry_on=NO_RETRY,
        )
    except (ValueError, firebase_exceptions.InvalidArgumentError) as e:
        logger.warning(f"⚠️ Firebase ID token rejected: {e}")
        raise UnauthorizedError("Token Firebase invalide", str(e)) from e
    except firebase_exceptions.FirebaseError as e:
        logger.error(f"❌ Firebase token verification failed: {e}")
        raise AppError(provider_error_status(e), "Erreur de vérification du token Firebase", str(e)) from e


def get_user(uid: str) -> firebase_auth.UserRecord:
    return with_retries(firebase_auth.get_user, uid, app=get_app(), no_retry_on=NO_RETRY)


def get_user_by_email(email: str) -> firebase_auth.UserRecord:
    return with_retries(firebase_auth.get_user_by_email, email, app=get_app(), no_retry_on=NO_RETRY)


def update_user(uid: str, **properties) -> firebase_auth.UserRecord:
    return with_retries(firebase_auth.update_user, uid, app=get_app(), no_retry_on=NO_RETRY, **properties)


def delete_user(uid: str) -> None:
    """Delete the identity provider account; a missing account is not an error"""
    try:
        with_retries(firebase_auth.delete_user, uid, app=get_app(), no_retry_on=NO_RETRY)
        logger.info(f"Firebase user deleted: {uid}")
    except firebase_auth.UserNotFoundError:
        logger.warning(f"⚠️ Firebase user {uid} already absent")


def ensure_role_claim(uid: str, role: str) -> None:
    """Set the `role` custom claim when it is missing or stale"""
    record = get_user(uid)
    claims = dict(record.custom_claims or {})
    if claims.get("role") == role:
        return
    claims["role"] = role
    with_retries(
        firebase_auth.set_custom_user_claims, uid, claims, app=get_app(), no_retry_on=NO_RETRY
    )
    logger.info(f"Role claim synced for {uid}: {role}")


def revoke_refresh_tokens(uid: str) -> None:
    with_retries(firebase_auth.revoke_refresh_tokens, uid, app=get_app(), no_retry_on=NO_RETRY)


def generate_signin_link(email: str, continue_url: Optional[str] = None) -> str:
    settings = firebase_auth.ActionCodeSettings(
        url=continue_url or f"{FRONTEND_URL}/pages/auth/signin.html",
        handle_code_in_app=True,
    )
    return with_retries(
        firebase_auth.generate_sign_in_with_email_link,
        email,
        settings,
        app=get_app(),
        no_retry_on=NO_RETRY,
    )


def send_push(token: str, title: str, body: str, data: Optional[dict] = None) -> str:
    """Send one FCM message; returns the message id"""
    message = messaging.Message(
        notification=messaging.Notification(title=title, body=body),
        token=token,
        data={k: str(v) for k, v in (data or {}).items()},
    )
    return with_retries(messaging.send, message, app=get_app(), no_retry_on=NO_RETRY)
