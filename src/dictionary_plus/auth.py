"""Authenticated-identity check for actions that act on a user's data."""

from __future__ import annotations

from dictionary_plus.exceptions import UnauthorizedError
from dictionary_plus.models import User


def require_user(user: User | None) -> User:
    """Return the caller's identity or raise :class:`UnauthorizedError`."""
    if user is None or not user.id:
        raise UnauthorizedError("You must be signed in to perform this action.")
    return user
