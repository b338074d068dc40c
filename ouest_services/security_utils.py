"""
Security utilities: backend JWTs, one-shot codes and input sanitization
"""

import logging
import os
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

# Input sanitization
import bleach
from jose import JWTError
from jose import jwt as jose_jwt

from .config import CODE_LENGTH, JWT_ALGORITHM, JWT_EXPIRES_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)


# ============================================================================
# TOKENS
# ============================================================================


def generate_numeric_code(length: int = CODE_LENGTH) -> str:
    """Random numeric code without a leading zero (6 digits → 100000..999999)"""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def create_jwt_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create the backend session token

    Args:
        user_id: Firebase uid of the user
        role: client or admin
        expires_delta: Token lifetime (default JWT_EXPIRES_MINUTES)
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=JWT_EXPIRES_MINUTES))
    to_encode = {"userId": user_id, "role": role, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a backend JWT

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def create_scoped_token(subject: str, scope: str, minutes: int = 15) -> str:
    """Short-lived single-purpose grant (e.g. password reset after code verification)"""
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jose_jwt.encode({"sub": subject, "scope": scope, "exp": expire}, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_scoped_token(token: str, scope: str) -> Optional[str]:
    """Return the subject of a valid grant for `scope`, else None"""
    payload = verify_jwt_token(token)
    if not payload or payload.get("scope") != scope:
        return None
    return payload.get("sub")


def constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode(), b.encode())


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip every HTML tag from user-supplied text"""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal and other attacks

    Args:
        filename: Original filename

    Returns:
        Safe filename
    """
    filename = os.path.basename(filename)
    filename = re.sub(r"[^\w\s\-\.]", "", filename)
    filename = filename.strip(". ").replace(" ", "_")

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[: 255 - len(ext)] + ext

    if not filename:
        filename = f"file_{secrets.token_hex(4)}"

    return filename


def mask_email(email: str) -> str:
    """j***@example.com style masking for logs"""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"
