"""
Article service — business rules for the Article aggregate.

Design notes
------------
- ``ArticleService`` is stateless: it is built per request from three
  repository collaborators and keeps no state of its own.
- Every operation validates (authorship, title uniqueness, favorite
  state) and then makes a single delegated repository call.  Failures
  raise ``NotFoundError`` / ``ConflictError`` / ``ForbiddenError``
  immediately; nothing is caught or retried here.
- Check-then-act sequences (title exists -> insert, favorited ->
  favorite) rely on the unique constraints underneath to stay correct
  under concurrent requests.
"""
import logging
from collections.abc import Collection

from app.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.models import Article, ArticleFavorite, Tag, User
from app.repositories.interfaces import (
    ArticleFavoriteRepository,
    ArticleRepository,
    SocialRepository,
)
from app.schemas import ArticleDetails, ArticleFacets

logger = logging.getLogger(__name__)


class ArticleService:
    def __init__(
        self,
        social_repository: SocialRepository,
        article_repository: ArticleRepository,
        article_favorite_repository: ArticleFavoriteRepository,
    ) -> None:
        self._social_repository = social_repository
        self._article_repository = article_repository
        self._article_favorite_repository = article_favorite_repository

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_article_by_slug(self, slug: str) -> Article:
        article = await self._article_repository.find_by_slug(slug)
        if article is None:
            raise NotFoundError("article not found.")
        return article

    async def read_articles(
        self, facets: ArticleFacets, requester: User | None = None
    ) -> list[ArticleDetails]:
        """
        Return projections of the articles matching *facets*.

        Without a *requester* the anonymous projection is used; with one,
        ``favorited`` and ``author.following`` are computed for them.
        Order is whatever the repository matched.
        """
        articles = await self._article_repository.find_all(facets)
        if requester is None:
            return [
                await self._article_repository.find_article_info_by_anonymous(a)
                for a in articles
            ]
        return [
            await self._article_repository.find_article_info_by_user(requester, a)
            for a in articles
        ]

    async def read_feeds(self, user: User, facets: ArticleFacets) -> list[ArticleDetails]:
        """Return articles by the authors *user* follows, newest first."""
        follows = await self._social_repository.find_by_follower(user)
        following = [f.following for f in follows]

        articles = await self._article_repository.find_by_author_in_order_by_created_at_desc(
            following, facets
        )
        return [
            await self._article_repository.find_article_info_by_user(user, a)
            for a in articles
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_article(self, article: Article, tags: Collection[Tag] | None = None) -> Article:
        if await self._article_repository.exists_by_title(article.title):
            logger.warning("Rejected article write: title %r already exists", article.title)
            raise ConflictError("title is already exists.")

        saved = await self._article_repository.save(article, tags if tags is not None else [])
        logger.info("Article %r written by user_id=%s", saved.slug, saved.author_id)
        return saved

    async def edit_title(self, requester: User, article: Article, title: str) -> Article:
        self._require_author(requester, article, "edit")

        # Re-submitting the current title is a no-op; the slug stays as is.
        if title != article.title:
            if await self._article_repository.exists_by_title(title):
                logger.warning("Rejected title edit on %r: title %r already exists", article.slug, title)
                raise ConflictError("title is already exists.")
            article.retitle(title)
        return await self._save_edit(article, "title")

    async def edit_description(self, requester: User, article: Article, description: str) -> Article:
        self._require_author(requester, article, "edit")
        article.description = description
        return await self._save_edit(article, "description")

    async def edit_content(self, requester: User, article: Article, content: str) -> Article:
        self._require_author(requester, article, "edit")
        article.content = content
        return await self._save_edit(article, "content")

    async def delete_article(self, requester: User, article: Article) -> None:
        self._require_author(requester, article, "delete")
        await self._article_repository.delete(article)
        logger.info("Article %r deleted by user_id=%s", article.slug, requester.id)

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def is_favorited(self, requester: User, article: Article) -> bool:
        return await self._article_favorite_repository.exists_by_user_and_article(requester, article)

    async def favorite_article(self, requester: User, article: Article) -> None:
        if await self.is_favorited(requester, article):
            raise ConflictError("you already favorited this article.")

        await self._article_favorite_repository.save(
            ArticleFavorite(user_id=requester.id, article_id=article.id)
        )
        logger.info("Article %r favorited by user_id=%s", article.slug, requester.id)

    async def unfavorite_article(self, requester: User, article: Article) -> None:
        if not await self.is_favorited(requester, article):
            raise ConflictError("you already unfavorited this article.")

        await self._article_favorite_repository.delete_by_user_and_article(requester, article)
        logger.info("Article %r unfavorited by user_id=%s", article.slug, requester.id)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    async def get_article_info_by_anonymous(self, article: Article) -> ArticleDetails:
        return await self._article_repository.find_article_info_by_anonymous(article)

    async def get_article_info_by_user(self, requester: User, article: Article) -> ArticleDetails:
        return await self._article_repository.find_article_info_by_user(requester, article)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_author(requester: User, article: Article, action: str) -> None:
        if article.is_not_author(requester):
            logger.warning(
                "Rejected %s on %r: user_id=%s is not the author",
                action, article.slug, getattr(requester, "id", None),
            )
            raise ForbiddenError(f"you can't {action} articles written by others.")

    async def _save_edit(self, article: Article, field: str) -> Article:
        saved = await self._article_repository.save(article)
        logger.info("Article %r %s edited", saved.slug, field)
        return saved
