from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.models import User
from app.repositories import (
    SqlAlchemyArticleFavoriteRepository,
    SqlAlchemyArticleRepository,
    SqlAlchemySocialRepository,
)
from app.schemas import ArticleFacets
from app.services import user_service
from app.services.article_service import ArticleService


def get_article_facets(
    tag: str | None = Query(None, description="Only articles carrying this tag."),
    author: str | None = Query(None, description="Only articles written by this username."),
    favorited: str | None = Query(None, description="Only articles favorited by this username."),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Number of articles returned.",
    ),
    offset: int = Query(0, ge=0, description="Number of articles skipped."),
) -> ArticleFacets:
    """
    Reusable FastAPI dependency that builds an immutable ``ArticleFacets``
    from the listing query parameters.

    *limit* is clamped to ``settings.MAX_PAGE_SIZE`` even though the
    query schema already validates it, so a settings change is enough.
    """
    return ArticleFacets(
        tag=tag,
        author=author,
        favorited=favorited,
        offset=offset,
        limit=min(limit, settings.MAX_PAGE_SIZE),
    )


def get_article_service(db: AsyncSession = Depends(get_db)) -> ArticleService:
    """Build a request-scoped ``ArticleService`` over the request's session."""
    return ArticleService(
        social_repository=SqlAlchemySocialRepository(db),
        article_repository=SqlAlchemyArticleRepository(db),
        article_favorite_repository=SqlAlchemyArticleFavoriteRepository(db),
    )


# ---------------------------------------------------------------------------
# Requester resolution
#
# Authentication happens upstream; the authenticated user id arrives in the
# X-User-Id header.
# ---------------------------------------------------------------------------

async def get_optional_user(
    x_user_id: int | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if x_user_id is None:
        return None
    user = await user_service.get_user_by_id(db, x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown requester")
    return user


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user
