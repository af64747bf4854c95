"""
User service: registration, lookup and profile operations for the User
aggregate.

Functions take a ``UserStorage`` as their first argument so the router
layer decides which session (and therefore which transaction) they run in.
Username and email uniqueness is enforced by the database; the router
translates integrity errors into 409 responses.
"""
import hashlib
import logging

from conduit.models import User, utcnow
from conduit.schemas import Profile, UserCreate, UserResponse
from conduit.serialization import iso8601, to_profile
from conduit.storage import UserStorage

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        bio=user.bio,
        image=user.image,
        created_at=iso8601(user.created_at),
        updated_at=iso8601(user.updated_at),
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

async def create_user(storage: UserStorage, data: UserCreate) -> UserResponse:
    now = utcnow()
    user = await storage.save_user(
        User(
            username=data.username,
            email=data.email,
            password=hash_password(data.password),
            bio=data.bio,
            image=data.image,
            created_at=now,
            updated_at=now,
        )
    )
    logger.info("Registered user id=%s username=%r", user.id, user.username)
    return _user_to_response(user)


async def get_user(storage: UserStorage, username: str) -> UserResponse | None:
    user = await storage.get_user_by_username(username)
    return _user_to_response(user) if user is not None else None


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

async def get_profile(
    storage: UserStorage, username: str, viewer_id: int | None = None
) -> Profile | None:
    """
    Return the public profile for *username*.

    ``following`` reflects whether *viewer_id* follows that user; it is
    False for anonymous viewers.
    """
    user = await storage.get_user_by_username(username)
    if user is None:
        return None
    following = viewer_id is not None and await storage.is_following(viewer_id, user.id)
    return to_profile(user, following=following)


async def follow(storage: UserStorage, user_id: int, username: str) -> Profile | None:
    followee = await storage.get_user_by_username(username)
    if followee is None:
        return None
    await storage.follow(user_id, followee.id)
    logger.info("User id=%s follows id=%s", user_id, followee.id)
    return to_profile(followee, following=True)


async def unfollow(storage: UserStorage, user_id: int, username: str) -> Profile | None:
    followee = await storage.get_user_by_username(username)
    if followee is None:
        return None
    await storage.unfollow(user_id, followee.id)
    logger.info("User id=%s unfollowed id=%s", user_id, followee.id)
    return to_profile(followee, following=False)
