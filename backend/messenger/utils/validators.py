"""Validation utilities."""
import re
from typing import Optional, Tuple

LOGIN_MAX_LENGTH = 50
PHONE_MAX_LENGTH = 16
STATUS_MAX_LENGTH = 140
MESSAGE_MAX_LENGTH = 300


def validate_login(login: str) -> bool:
    """Validate login format."""
    # Login must be 3-50 characters, alphanumeric with underscores
    if not 3 <= len(login) <= LOGIN_MAX_LENGTH:
        return False
    return re.match(r'^[a-zA-Z0-9_]+$', login) is not None


def validate_phone(phone: str) -> bool:
    """Validate phone number format."""
    pattern = r'^\+?[0-9][0-9 \-()]{2,}$'
    return len(phone) <= PHONE_MAX_LENGTH and re.match(pattern, phone) is not None


def validate_password_strength(password: str) -> Tuple[bool, Optional[str]]:
    """Validate password strength."""
    if len(password) < 6:
        return False, "Password must be at least 6 characters long"

    return True, None


def validate_message_text(text: str) -> Tuple[bool, Optional[str]]:
    """Validate message body."""
    if not text or not text.strip():
        return False, "Message text cannot be empty"
    if len(text) > MESSAGE_MAX_LENGTH:
        return False, f"Message text must be at most {MESSAGE_MAX_LENGTH} characters"
    return True, None


def validate_status(status: str) -> bool:
    """Validate status text length."""
    return len(status) <= STATUS_MAX_LENGTH
