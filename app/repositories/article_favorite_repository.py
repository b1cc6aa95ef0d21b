from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.models import Article, ArticleFavorite, User
from app.repositories import interfaces


class SqlAlchemyArticleFavoriteRepository(interfaces.ArticleFavoriteRepository):
    """Favorite rows; every write invalidates cached favorite counts."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def exists_by_user_and_article(self, user: User, article: Article) -> bool:
        result = await self._db.execute(
            select(ArticleFavorite.id)
            .where(ArticleFavorite.user_id == user.id, ArticleFavorite.article_id == article.id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def save(self, favorite: ArticleFavorite) -> ArticleFavorite:
        self._db.add(favorite)
        await self._db.flush()
        await cache.invalidate_article_details_for(self._db)
        return favorite

    async def delete_by_user_and_article(self, user: User, article: Article) -> None:
        await self._db.execute(
            delete(ArticleFavorite).where(
                ArticleFavorite.user_id == user.id,
                ArticleFavorite.article_id == article.id,
            )
        )
        await self._db.flush()
        await cache.invalidate_article_details_for(self._db)

    async def count_by_article(self, article: Article) -> int:
        q = (
            select(func.count())
            .select_from(ArticleFavorite)
            .where(ArticleFavorite.article_id == article.id)
        )
        return (await self._db.execute(q)).scalar_one()
