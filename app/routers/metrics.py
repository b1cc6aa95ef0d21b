from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.models import Article, ArticleFavorite, User, UserFollow
from app.schemas import MetricsResponse
from app.cache import cache

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):

    total_articles = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    total_users = (await db.execute(select(func.count()).select_from(User))).scalar_one()

    total_favorites = (await db.execute(select(func.count()).select_from(ArticleFavorite))).scalar_one()

    total_follows = (await db.execute(select(func.count()).select_from(UserFollow))).scalar_one()

    return MetricsResponse(
        total_articles=total_articles,
        total_users=total_users,
        total_favorites=total_favorites,
        total_follows=total_follows,
        cache_info=cache.stats,
    )
