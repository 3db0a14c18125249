"""Password composition policy and the hashing primitive wrapper."""

from __future__ import annotations

import re
from typing import Callable, Sequence

from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 8

_RULES: Sequence[tuple[Callable[[str], bool], str]] = (
    (lambda value: len(value) >= MIN_PASSWORD_LENGTH, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"),
    (lambda value: re.search(r"[A-Z]", value) is not None, "Password must contain at least one uppercase letter"),
    (lambda value: re.search(r"[a-z]", value) is not None, "Password must contain at least one lowercase letter"),
    (lambda value: re.search(r"[0-9]", value) is not None, "Password must contain at least one digit"),
)


def password_policy_violation(password: str) -> str | None:
    """Return the message of the first rule ``password`` breaks, if any."""

    for check, message in _RULES:
        if not check(password):
            return message
    return None


class PasswordHasher:
    """Thin wrapper around a passlib context with a configurable cost."""

    def __init__(self, *, scheme: str = "argon2", rounds: int | None = None) -> None:
        options: dict[str, object] = {}
        if rounds is not None:
            # argon2 maps rounds to time_cost, bcrypt to the log2 work factor
            options[f"{scheme}__rounds"] = rounds
        self._context = CryptContext(schemes=[scheme], deprecated="auto", **options)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        return self._context.verify(password, password_hash)
