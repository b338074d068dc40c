"""Shared validation utilities"""

import re
import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def normalize_fr_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a French phone number to +33XXXXXXXXX.

    Accepts 0XXXXXXXXX, 33XXXXXXXXX and +33XXXXXXXXX with any separators.

    Returns:
        The normalized number, or None when it cannot be read as a French number
    """
    if not phone:
        return None

    digits = re.sub(r"[^\d+]", "", phone.strip())

    if digits.startswith("+33"):
        normalized = digits
    elif digits.startswith("33"):
        normalized = "+33" + digits[2:]
    elif digits.startswith("0"):
        normalized = "+33" + digits[1:]
    else:
        normalized = digits

    if len(normalized) != 12 or not normalized.startswith("+33"):
        return None
    return normalized


def is_valid_fr_phone(phone: Optional[str]) -> bool:
    return bool(phone) and phone.startswith("+33") and len(phone) == 12


def validate_international_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an international phone number (+CC followed by digits and separators).

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    if not re.match(r"^\+\d{1,3}[\s\d\-\(\)]{4,20}$", phone):
        raise ValueError("Numéro de téléphone international invalide")
    return phone


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Adresse email invalide")

    return email


def split_options(options: Optional[str]) -> list[str]:
    """Dash-joined option string → list of non-empty trimmed options"""
    if not options:
        return []
    return [opt.strip() for opt in options.split("-") if opt.strip()]


def join_options(options) -> Optional[str]:
    """Accept a list or a comma/dash separated string; store dash-joined"""
    if options is None:
        return None
    if isinstance(options, (list, tuple)):
        parts = [str(o).strip() for o in options]
    else:
        parts = str(options).replace(",", "-").split("-")
    parts = [p.strip() for p in parts if p and p.strip()]
    return "-".join(parts) if parts else None
