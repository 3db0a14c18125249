"""User lifecycle guard."""

from .models import User
from .passwords import PasswordHasher, password_policy_violation
from .repository import DuplicateEmailError, UserRepository
from .service import UserService, normalize_email

__all__ = [
    "DuplicateEmailError",
    "PasswordHasher",
    "User",
    "UserRepository",
    "UserService",
    "normalize_email",
    "password_policy_violation",
]
