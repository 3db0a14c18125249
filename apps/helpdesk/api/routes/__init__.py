"""Route modules exposed by the API package."""

from . import ping, reference, tickets, users

__all__ = ["ping", "reference", "tickets", "users"]
