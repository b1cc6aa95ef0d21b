"""
User service — user creation, profile lookup and follow edges.

Follow edges written here are what ``ArticleService.read_feeds`` reads
back through the social repository.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError
from app.models import User, UserFollow
from app.repositories import SqlAlchemySocialRepository
from app.schemas import ProfileResponse, UserCreate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "image": user.image,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _profile(user: User, following: bool) -> ProfileResponse:
    return ProfileResponse(
        username=user.username,
        bio=user.bio,
        image=user.image,
        following=following,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("user not found.")
    return user


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Email and username uniqueness is enforced by unique constraints; the
    router translates the resulting ``IntegrityError`` into a 409.
    """
    user = User(
        username=data.username,
        email=data.email,
        bio=data.bio,
        image=data.image,
    )
    db.add(user)
    await db.flush()
    logger.info("User %r created", user.username)
    return _user_to_dict(user)


async def get_profile(db: AsyncSession, username: str, viewer: User | None = None) -> ProfileResponse:
    user = await get_user_by_username(db, username)
    following = False
    if viewer is not None:
        following = await SqlAlchemySocialRepository(db).exists(viewer, user)
    return _profile(user, following)


async def follow_user(db: AsyncSession, follower: User, username: str) -> ProfileResponse:
    """Add the edge *follower* -> *username*.  Self-follow and repeats are conflicts."""
    following = await get_user_by_username(db, username)
    if following.id == follower.id:
        raise ConflictError("you can't follow yourself.")

    social = SqlAlchemySocialRepository(db)
    if await social.exists(follower, following):
        raise ConflictError("you already follow this user.")

    await social.save(UserFollow(follower_id=follower.id, following_id=following.id))
    logger.info("user_id=%s now follows %r", follower.id, following.username)
    return _profile(following, True)


async def unfollow_user(db: AsyncSession, follower: User, username: str) -> ProfileResponse:
    following = await get_user_by_username(db, username)

    social = SqlAlchemySocialRepository(db)
    if not await social.exists(follower, following):
        raise ConflictError("you don't follow this user.")

    await social.delete(follower, following)
    logger.info("user_id=%s unfollowed %r", follower.id, following.username)
    return _profile(following, False)
