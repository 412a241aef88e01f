"""
Input validation helpers shared by routes and services.
"""

import re
from typing import Optional

from devboard.core.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Alphanumerics or single hyphens, no leading/trailing hyphen, max 39 chars
GITHUB_USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}$")
STACKOVERFLOW_ID_RE = re.compile(r"^\d+$")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def is_valid_github_username(username: Optional[str]) -> bool:
    return bool(username) and bool(GITHUB_USERNAME_RE.match(username))


def is_valid_stackoverflow_user_id(user_id: Optional[str]) -> bool:
    return bool(user_id) and bool(STACKOVERFLOW_ID_RE.match(user_id))


def validate_password(password: Optional[str]) -> None:
    """Raise ValidationError unless the password is at least moderately strong."""
    if not password or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    has_upper = any(ch.isupper() for ch in password)
    has_lower = any(ch.islower() for ch in password)
    has_digit = any(ch.isdigit() for ch in password)
    if not (has_upper and has_lower and has_digit):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )


def require_github_username(username: Optional[str]) -> str:
    if not is_valid_github_username(username):
        raise ValidationError("Invalid GitHub username format")
    return username


def require_stackoverflow_user_id(user_id: Optional[str]) -> str:
    if not is_valid_stackoverflow_user_id(user_id):
        raise ValidationError("Invalid StackOverflow user ID format")
    return user_id
