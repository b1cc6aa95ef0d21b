from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.models import User, UserFollow
from app.repositories import interfaces


class SqlAlchemySocialRepository(interfaces.SocialRepository):
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_follower(self, user: User) -> list[UserFollow]:
        q = (
            select(UserFollow)
            .where(UserFollow.follower_id == user.id)
            .options(joinedload(UserFollow.following))
        )
        result = await self._db.execute(q)
        return list(result.unique().scalars().all())

    async def exists(self, follower: User, following: User) -> bool:
        result = await self._db.execute(
            select(UserFollow.id)
            .where(UserFollow.follower_id == follower.id, UserFollow.following_id == following.id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def save(self, follow: UserFollow) -> UserFollow:
        self._db.add(follow)
        await self._db.flush()
        return follow

    async def delete(self, follower: User, following: User) -> None:
        await self._db.execute(
            delete(UserFollow).where(
                UserFollow.follower_id == follower.id,
                UserFollow.following_id == following.id,
            )
        )
        await self._db.flush()
