"""
SQLAlchemy implementation of the article repository.

Design notes
------------
- ``Article.author`` and ``Article.tags`` are ``lazy="noload"``; every
  query that hands articles back to callers loads them explicitly with
  ``joinedload`` (author) and ``selectinload`` (tags).  ``unique()`` is
  required after any ``joinedload`` query.
- Reloads after a write use ``populate_existing`` so the identity-map
  instance picks up the freshly loaded relationships.
- The repository flushes but never commits; the transaction belongs to
  the ``get_db`` dependency.
"""
import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.cache import cache
from app.config import settings
from app.models import Article, ArticleFavorite, Tag, User, UserFollow, article_tags
from app.repositories import interfaces
from app.repositories.article_favorite_repository import SqlAlchemyArticleFavoriteRepository
from app.schemas import ArticleDetails, ArticleFacets, ProfileResponse

logger = logging.getLogger(__name__)


def _with_relations(q):
    return q.options(joinedload(Article.author), selectinload(Article.tags))


class SqlAlchemyArticleRepository(interfaces.ArticleRepository):
    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        self._favorites = SqlAlchemyArticleFavoriteRepository(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find_by_slug(self, slug: str) -> Article | None:
        result = await self._db.execute(
            _with_relations(select(Article).where(Article.slug == slug))
        )
        return result.unique().scalar_one_or_none()

    async def exists_by_title(self, title: str) -> bool:
        result = await self._db.execute(
            select(Article.id).where(Article.title == title).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def find_all(self, facets: ArticleFacets) -> list[Article]:
        q = select(Article)
        if facets.tag:
            q = q.where(Article.tags.any(Tag.name == facets.tag))
        if facets.author:
            q = q.where(
                Article.author_id.in_(select(User.id).where(User.username == facets.author))
            )
        if facets.favorited:
            q = q.where(
                Article.id.in_(
                    select(ArticleFavorite.article_id)
                    .join(User, User.id == ArticleFavorite.user_id)
                    .where(User.username == facets.favorited)
                )
            )
        return await self._page(q, facets)

    async def find_by_author_in_order_by_created_at_desc(
        self, authors: Sequence[User], facets: ArticleFacets
    ) -> list[Article]:
        author_ids = [a.id for a in authors]
        if not author_ids:
            return []
        q = select(Article).where(Article.author_id.in_(author_ids))
        return await self._page(q, facets)

    async def _page(self, q, facets: ArticleFacets) -> list[Article]:
        q = (
            _with_relations(q)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset(facets.offset)
            .limit(facets.limit)
        )
        result = await self._db.execute(q)
        return list(result.unique().scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, article: Article, tags: Iterable[Tag] | None = None) -> Article:
        if tags is not None:
            article.tags = await self._resolve_tags(tags)
        if not article.slug:
            article.retitle(article.title)
        await self._ensure_unique_slug(article)

        self._db.add(article)
        await self._db.flush()
        await cache.invalidate_article_details_for(self._db)
        return await self._reload(article.id)

    async def delete(self, article: Article) -> None:
        article_id = article.id
        await self._db.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
        await self._db.execute(delete(ArticleFavorite).where(ArticleFavorite.article_id == article_id))
        await self._db.execute(delete(Article).where(Article.id == article_id))
        await self._db.flush()
        await cache.invalidate_article_details_for(self._db)

    async def _resolve_tags(self, tags: Iterable[Tag]) -> list[Tag]:
        """
        Map each requested tag to a persistent Tag row, creating any
        name not seen before.  Duplicate names collapse to one row.
        """
        resolved: dict[str, Tag] = {}
        for tag in tags:
            name = tag.name.strip()
            if not name or name in resolved:
                continue
            result = await self._db.execute(select(Tag).where(Tag.name == name))
            existing = result.scalar_one_or_none()
            if existing is None:
                existing = Tag(name=name)
                self._db.add(existing)
                await self._db.flush()
            resolved[name] = existing
        return list(resolved.values())

    async def _ensure_unique_slug(self, article: Article) -> None:
        # Distinct titles may still slugify identically ("Hello!" / "Hello").
        base = article.slug
        suffix = 1
        while await self._slug_taken(article.slug, article.id):
            suffix += 1
            article.slug = f"{base}-{suffix}"
        if suffix > 1:
            logger.debug("Slug collision; using %r", article.slug)

    async def _slug_taken(self, slug: str, article_id: int | None) -> bool:
        q = select(Article.id).where(Article.slug == slug)
        if article_id is not None:
            q = q.where(Article.id != article_id)
        with self._db.no_autoflush:
            result = await self._db.execute(q.limit(1))
        return result.scalar_one_or_none() is not None

    async def _reload(self, article_id: int) -> Article:
        result = await self._db.execute(
            _with_relations(select(Article).where(Article.id == article_id))
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    async def find_article_info_by_anonymous(self, article: Article) -> ArticleDetails:
        key = cache.article_details_key(article.slug)
        cached = await cache.get(key)
        if cached:
            return ArticleDetails(**cached)

        details = await self._project(article, favorited=False, following=False)
        await cache.set(key, details.model_dump(mode="json"), ttl=settings.CACHE_TTL_DETAIL)
        return details

    async def find_article_info_by_user(self, requester: User, article: Article) -> ArticleDetails:
        favorited = await self._favorites.exists_by_user_and_article(requester, article)
        following = await self._db.execute(
            select(UserFollow.id)
            .where(UserFollow.follower_id == requester.id, UserFollow.following_id == article.author_id)
            .limit(1)
        )
        return await self._project(
            article,
            favorited=favorited,
            following=following.scalar_one_or_none() is not None,
        )

    async def _project(self, article: Article, favorited: bool, following: bool) -> ArticleDetails:
        author = article.author
        if author is None:
            author = await self._db.get(User, article.author_id)

        favorites_count = await self._favorites.count_by_article(article)

        return ArticleDetails(
            slug=article.slug,
            title=article.title,
            description=article.description,
            body=article.content,
            tags=sorted(t.name for t in article.tags),
            created_at=article.created_at,
            updated_at=article.updated_at,
            favorited=favorited,
            favorites_count=favorites_count,
            author=ProfileResponse(
                username=author.username,
                bio=author.bio,
                image=author.image,
                following=following,
            ),
        )
