"""Helpers that turn ORM records into wire values."""
from datetime import datetime, timezone

from conduit.models import User
from conduit.schemas import Profile


def iso8601(value: datetime) -> str:
    """
    Format *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Naive datetimes (SQLite hands these back) are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def to_profile(user: User | None, following: bool = False) -> Profile:
    """Project *user* to a Profile; a missing user becomes the empty profile."""
    if user is None:
        return Profile(username="", bio=None, image=None, following=False)
    return Profile(username=user.username, bio=user.bio, image=user.image, following=following)
