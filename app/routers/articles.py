from fastapi import APIRouter, Depends

from app.dependencies import (
    get_article_facets,
    get_article_service,
    get_current_user,
    get_optional_user,
)
from app.models import Article, Tag, User
from app.schemas import (
    ArticleCreate,
    ArticleDetails,
    ArticleFacets,
    ArticleListResponse,
    ArticleUpdate,
)
from app.services.article_service import ArticleService

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


def _listing(details: list[ArticleDetails]) -> ArticleListResponse:
    return ArticleListResponse(articles=details, articles_count=len(details))


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    facets: ArticleFacets = Depends(get_article_facets),
    requester: User | None = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    return _listing(await service.read_articles(facets, requester=requester))


@router.get("/feed", response_model=ArticleListResponse)
async def feed_articles(
    facets: ArticleFacets = Depends(get_article_facets),
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return _listing(await service.read_feeds(requester, facets))


@router.get("/{slug}", response_model=ArticleDetails)
async def get_article(
    slug: str,
    requester: User | None = Depends(get_optional_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.read_article_by_slug(slug)
    if requester is None:
        return await service.get_article_info_by_anonymous(article)
    return await service.get_article_info_by_user(requester, article)


@router.post("", status_code=201, response_model=ArticleDetails)
async def create_article(
    data: ArticleCreate,
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = Article(
        title=data.title,
        description=data.description,
        content=data.body,
        author_id=requester.id,
    )
    article = await service.write_article(article, [Tag(name=name) for name in data.tags])
    return await service.get_article_info_by_user(requester, article)


@router.put("/{slug}", response_model=ArticleDetails)
async def update_article(
    slug: str,
    data: ArticleUpdate,
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.read_article_by_slug(slug)
    if data.title is not None:
        article = await service.edit_title(requester, article, data.title)
    if data.description is not None:
        article = await service.edit_description(requester, article, data.description)
    if data.body is not None:
        article = await service.edit_content(requester, article, data.body)
    return await service.get_article_info_by_user(requester, article)


@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.read_article_by_slug(slug)
    await service.delete_article(requester, article)


@router.post("/{slug}/favorite", response_model=ArticleDetails)
async def favorite_article(
    slug: str,
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.read_article_by_slug(slug)
    await service.favorite_article(requester, article)
    return await service.get_article_info_by_user(requester, article)


@router.delete("/{slug}/favorite", response_model=ArticleDetails)
async def unfavorite_article(
    slug: str,
    requester: User = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.read_article_by_slug(slug)
    await service.unfavorite_article(requester, article)
    return await service.get_article_info_by_user(requester, article)
