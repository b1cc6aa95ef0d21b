from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from app.config import settings


# --- User ---

class UserBase(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(max_length=255)
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(BaseModel):
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field("", max_length=500)
    body: str
    tags: list[str] = []  # tag names


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=500)
    body: str | None = None


class ArticleFacets(BaseModel):
    """
    Immutable listing filter handed to the article repository as-is.

    ``author`` and ``favorited`` are usernames; ``offset`` / ``limit``
    paginate the result after filtering.
    """

    tag: str | None = None
    author: str | None = None
    favorited: str | None = None
    offset: int = Field(0, ge=0)
    limit: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    model_config = ConfigDict(frozen=True)


class ArticleDetails(BaseModel):
    """Read-only article projection with viewer-relative fields."""

    slug: str
    title: str
    description: str
    body: str
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime | None = None
    favorited: bool = False
    favorites_count: int = 0
    author: ProfileResponse
    model_config = ConfigDict(frozen=True)


class ArticleListResponse(BaseModel):
    articles: list[ArticleDetails]
    articles_count: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_articles: int
    total_users: int
    total_favorites: int
    total_follows: int
    cache_info: dict = {}
