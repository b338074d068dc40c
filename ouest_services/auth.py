import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import ForbiddenError, UnauthorizedError
from .models import User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def user_from_token(db: Session, token: str) -> User:
    """Resolve a backend JWT to its user; 401 when invalid or the user is gone"""
    payload = verify_jwt_token(token)
    if not payload or not payload.get("userId"):
        raise UnauthorizedError("Token invalide ou expiré")

    user = db.query(User).filter(User.id == payload["userId"]).first()
    if not user:
        logger.warning(f"⚠️ Token for unknown user {payload['userId']}")
        raise UnauthorizedError("Utilisateur non trouvé")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the backend Bearer token"""
    if not credentials:
        raise UnauthorizedError("Non authentifié. Fournissez un token Bearer valide.")
    user = user_from_token(db, credentials.credentials)
    logger.debug(f"✅ Authenticated {user.id} ({user.role})")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests (or bad tokens) yield None"""
    if not credentials:
        return None
    try:
        return user_from_token(db, credentials.credentials)
    except UnauthorizedError:
        return None


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        logger.warning(f"⚠️ Accès non autorisé: {user.id} role={user.role}")
        raise ForbiddenError()
    return user


def ensure_owner_or_admin(user: User, owner_id: Optional[str]) -> None:
    if user.role == "admin":
        return
    if owner_id is None or owner_id != user.id:
        raise ForbiddenError("Accès non autorisé à cette ressource")
