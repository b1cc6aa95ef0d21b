"""Abstract repository interfaces consumed by ``ArticleService``."""
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from app.models import Article, ArticleFavorite, Tag, User, UserFollow
from app.schemas import ArticleDetails, ArticleFacets


class SocialRepository(ABC):
    """Follow edges between users."""

    @abstractmethod
    async def find_by_follower(self, user: User) -> list[UserFollow]:
        """Return every edge whose follower is *user*, with ``following`` loaded."""
        ...

    @abstractmethod
    async def exists(self, follower: User, following: User) -> bool:
        ...

    @abstractmethod
    async def save(self, follow: UserFollow) -> UserFollow:
        ...

    @abstractmethod
    async def delete(self, follower: User, following: User) -> None:
        ...


class ArticleRepository(ABC):
    """Article lookup, persistence, listing and projection."""

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Article | None:
        ...

    @abstractmethod
    async def exists_by_title(self, title: str) -> bool:
        ...

    @abstractmethod
    async def find_all(self, facets: ArticleFacets) -> list[Article]:
        """Return the articles matching *facets*, newest first."""
        ...

    @abstractmethod
    async def find_by_author_in_order_by_created_at_desc(
        self, authors: Sequence[User], facets: ArticleFacets
    ) -> list[Article]:
        """Return articles written by any of *authors*, paginated by *facets*."""
        ...

    @abstractmethod
    async def save(self, article: Article, tags: Iterable[Tag] | None = None) -> Article:
        """
        Persist *article* and return it with author and tags loaded.

        When *tags* is given the article's tag set is replaced by it;
        ``None`` leaves the current tags untouched.
        """
        ...

    @abstractmethod
    async def delete(self, article: Article) -> None:
        ...

    @abstractmethod
    async def find_article_info_by_anonymous(self, article: Article) -> ArticleDetails:
        ...

    @abstractmethod
    async def find_article_info_by_user(self, requester: User, article: Article) -> ArticleDetails:
        ...


class ArticleFavoriteRepository(ABC):
    """Favorite markers keyed by (user, article)."""

    @abstractmethod
    async def exists_by_user_and_article(self, user: User, article: Article) -> bool:
        ...

    @abstractmethod
    async def save(self, favorite: ArticleFavorite) -> ArticleFavorite:
        ...

    @abstractmethod
    async def delete_by_user_and_article(self, user: User, article: Article) -> None:
        ...

    @abstractmethod
    async def count_by_article(self, article: Article) -> int:
        ...
