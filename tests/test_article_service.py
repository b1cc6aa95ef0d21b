"""
Direct ArticleService tests — business rules without HTTP overhead.

The service is wired to the real SQLAlchemy repositories over the
in-memory SQLite session, so each test covers the rule and the query
that backs it.
"""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.models import Article, Tag, User, UserFollow, article_tags, slugify
from app.repositories.interfaces import (
    ArticleFavoriteRepository,
    ArticleRepository,
    SocialRepository,
)
from app.schemas import ArticleFacets
from app.services.article_service import ArticleService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _write(service, author, title, tags=None, content="Body"):
    article = Article(
        title=title,
        description=f"About {title}",
        content=content,
        author_id=author.id,
    )
    tag_objs = None if tags is None else [Tag(name=t) for t in tags]
    return await service.write_article(article, tag_objs)


async def _follow(db: AsyncSession, follower, following):
    db.add(UserFollow(follower_id=follower.id, following_id=following.id))
    await db.flush()


def _titles(details):
    return [d.title for d in details]


# ---------------------------------------------------------------------------
# read_article_by_slug
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_read_article_by_slug(article_service, make_user):
    author = await make_user("author")
    written = await _write(article_service, author, "Hello World")

    found = await article_service.read_article_by_slug("hello-world")
    assert found.id == written.id
    assert found.author.username == "author"


@pytest.mark.asyncio
async def test_read_article_by_slug_not_found(article_service):
    with pytest.raises(NotFoundError, match="article not found"):
        await article_service.read_article_by_slug("no-such-article")


# ---------------------------------------------------------------------------
# write_article
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_write_article_attaches_tags(article_service, make_user):
    author = await make_user("author")
    article = await _write(article_service, author, "Tagged", tags=["go", "python", "go"])

    assert article.id is not None
    assert article.slug == "tagged"
    assert sorted(t.name for t in article.tags) == ["go", "python"]
    assert article.author.username == "author"


@pytest.mark.asyncio
async def test_write_article_without_tags(article_service, make_user):
    author = await make_user("author")
    article = await _write(article_service, author, "Untagged", tags=None)
    assert article.tags == []


@pytest.mark.asyncio
async def test_write_article_reuses_existing_tags(article_service, make_user, db_session):
    author = await make_user("author")
    await _write(article_service, author, "First", tags=["go"])
    await _write(article_service, author, "Second", tags=["go"])

    tags = (await db_session.execute(select(Tag))).scalars().all()
    assert [t.name for t in tags] == ["go"]


@pytest.mark.asyncio
async def test_write_article_duplicate_title_conflicts(article_service, make_user):
    author = await make_user("author")
    other = await make_user("other")
    await _write(article_service, author, "Same Title")

    with pytest.raises(ConflictError, match="title is already exists"):
        await _write(article_service, other, "Same Title")


@pytest.mark.asyncio
async def test_write_article_slug_collision_gets_suffix(article_service, make_user):
    author = await make_user("author")
    first = await _write(article_service, author, "Hello")
    second = await _write(article_service, author, "Hello!")
    assert first.slug == "hello"
    assert second.slug == "hello-2"


@pytest.mark.asyncio
async def test_write_article_repeated_slug_collisions(article_service, make_user):
    author = await make_user("author")
    written = [await _write(article_service, author, t) for t in ("Hello", "Hello!", "Hello?")]
    assert [a.slug for a in written] == ["hello", "hello-2", "hello-3"]


# ---------------------------------------------------------------------------
# edit_* / delete_article
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_edit_title_updates_slug(article_service, make_user):
    author = await make_user("author")
    article = await _write(article_service, author, "Before")

    edited = await article_service.edit_title(author, article, "After Edit")
    assert edited.title == "After Edit"
    assert edited.slug == "after-edit"
    with pytest.raises(NotFoundError):
        await article_service.read_article_by_slug("before")


@pytest.mark.asyncio
async def test_edit_title_to_current_title_is_noop(article_service, make_user):
    author = await make_user("author")
    article = await _write(article_service, author, "Unchanged")

    edited = await article_service.edit_title(author, article, "Unchanged")
    assert edited.slug == "unchanged"


@pytest.mark.asyncio
async def test_edit_title_to_current_title_keeps_suffixed_slug(article_service, make_user):
    author = await make_user("author")
    await _write(article_service, author, "Hello")
    second = await _write(article_service, author, "Hello!")

    edited = await article_service.edit_title(author, second, "Hello!")
    assert edited.slug == "hello-2"
    assert (await article_service.read_article_by_slug("hello-2")).id == second.id


@pytest.mark.asyncio
async def test_edit_title_to_taken_title_conflicts(article_service, make_user):
    author = await make_user("author")
    await _write(article_service, author, "Taken")
    article = await _write(article_service, author, "Mine")

    with pytest.raises(ConflictError):
        await article_service.edit_title(author, article, "Taken")


@pytest.mark.asyncio
async def test_edit_description_and_content(article_service, make_user):
    author = await make_user("author")
    article = await _write(article_service, author, "Editable")

    article = await article_service.edit_description(author, article, "New description")
    article = await article_service.edit_content(author, article, "New body")
    assert article.description == "New description"
    assert article.content == "New body"
    assert article.updated_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "operation, value",
    [
        ("edit_title", "Hijacked"),
        ("edit_title", "Owned"),  # forbidden even when the title would collide
        ("edit_description", "Hijacked"),
        ("edit_content", ""),
    ],
)
async def test_edits_by_non_author_are_forbidden(article_service, make_user, operation, value):
    author = await make_user("author")
    intruder = await make_user("intruder")
    article = await _write(article_service, author, "Owned")

    with pytest.raises(ForbiddenError, match="written by others"):
        await getattr(article_service, operation)(intruder, article, value)


@pytest.mark.asyncio
async def test_delete_article_by_author(article_service, make_user, db_session):
    author = await make_user("author")
    reader = await make_user("reader")
    article = await _write(article_service, author, "Doomed", tags=["go"])
    await article_service.favorite_article(reader, article)

    await article_service.delete_article(author, article)

    with pytest.raises(NotFoundError):
        await article_service.read_article_by_slug("doomed")
    links = (await db_session.execute(select(article_tags))).all()
    assert links == []
    assert await article_service.is_favorited(reader, article) is False


@pytest.mark.asyncio
async def test_delete_article_by_non_author_forbidden(article_service, make_user):
    author = await make_user("author")
    intruder = await make_user("intruder")
    article = await _write(article_service, author, "Kept")

    with pytest.raises(ForbiddenError, match="can't delete"):
        await article_service.delete_article(intruder, article)
    assert (await article_service.read_article_by_slug("kept")).id == article.id


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_favorite_then_unfavorite(article_service, make_user):
    author = await make_user("author")
    reader = await make_user("reader")
    article = await _write(article_service, author, "Likeable")

    assert await article_service.is_favorited(reader, article) is False
    await article_service.favorite_article(reader, article)
    assert await article_service.is_favorited(reader, article) is True
    await article_service.unfavorite_article(reader, article)
    assert await article_service.is_favorited(reader, article) is False


@pytest.mark.asyncio
async def test_favorite_twice_conflicts(article_service, make_user):
    author = await make_user("author")
    reader = await make_user("reader")
    article = await _write(article_service, author, "Likeable")

    await article_service.favorite_article(reader, article)
    with pytest.raises(ConflictError, match="already favorited"):
        await article_service.favorite_article(reader, article)


@pytest.mark.asyncio
async def test_unfavorite_when_not_favorited_conflicts(article_service, make_user):
    author = await make_user("author")
    reader = await make_user("reader")
    article = await _write(article_service, author, "Likeable")

    with pytest.raises(ConflictError, match="already unfavorited"):
        await article_service.unfavorite_article(reader, article)


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_article_info_anonymous_vs_user(article_service, make_user, db_session):
    author = await make_user("author")
    reader = await make_user("reader")
    article = await _write(article_service, author, "Projected", tags=["b", "a"])
    await article_service.favorite_article(reader, article)
    await _follow(db_session, reader, author)

    anonymous = await article_service.get_article_info_by_anonymous(article)
    assert anonymous.favorited is False
    assert anonymous.favorites_count == 1
    assert anonymous.author.following is False
    assert anonymous.tags == ["a", "b"]
    assert anonymous.body == "Body"

    scoped = await article_service.get_article_info_by_user(reader, article)
    assert scoped.favorited is True
    assert scoped.favorites_count == 1
    assert scoped.author.username == "author"
    assert scoped.author.following is True


# ---------------------------------------------------------------------------
# read_articles
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_read_articles_newest_first(article_service, make_user):
    author = await make_user("author")
    for title in ("One", "Two", "Three"):
        await _write(article_service, author, title)

    details = await article_service.read_articles(ArticleFacets())
    assert _titles(details) == ["Three", "Two", "One"]


@pytest.mark.asyncio
async def test_read_articles_filters(article_service, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    a1 = await _write(article_service, alice, "Alice Go", tags=["go"])
    await _write(article_service, alice, "Alice Py", tags=["python"])
    await _write(article_service, bob, "Bob Go", tags=["go"])
    await article_service.favorite_article(bob, a1)

    by_tag = await article_service.read_articles(ArticleFacets(tag="go"))
    assert set(_titles(by_tag)) == {"Alice Go", "Bob Go"}

    by_author = await article_service.read_articles(ArticleFacets(author="alice"))
    assert set(_titles(by_author)) == {"Alice Go", "Alice Py"}

    by_favorited = await article_service.read_articles(ArticleFacets(favorited="bob"))
    assert _titles(by_favorited) == ["Alice Go"]

    combined = await article_service.read_articles(ArticleFacets(tag="go", author="bob"))
    assert _titles(combined) == ["Bob Go"]

    assert await article_service.read_articles(ArticleFacets(author="nobody")) == []


@pytest.mark.asyncio
async def test_read_articles_pagination(article_service, make_user):
    author = await make_user("author")
    for i in range(5):
        await _write(article_service, author, f"Article {i}")

    page = await article_service.read_articles(ArticleFacets(offset=1, limit=2))
    assert _titles(page) == ["Article 3", "Article 2"]


@pytest.mark.asyncio
async def test_read_articles_scoped_to_requester(article_service, make_user):
    author = await make_user("author")
    reader = await make_user("reader")
    liked = await _write(article_service, author, "Liked")
    await _write(article_service, author, "Ignored")
    await article_service.favorite_article(reader, liked)

    details = await article_service.read_articles(ArticleFacets(), requester=reader)
    flags = {d.title: d.favorited for d in details}
    assert flags == {"Liked": True, "Ignored": False}


# ---------------------------------------------------------------------------
# read_feeds
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feed_contains_followed_authors_only(article_service, make_user, db_session):
    u1 = await make_user("u1")
    u2 = await make_user("u2")
    u3 = await make_user("u3")
    stranger = await make_user("stranger")
    await _follow(db_session, u1, u2)

    await _write(article_service, u2, "Hello", tags=["go"])
    await _write(article_service, stranger, "Elsewhere")

    feed = await article_service.read_feeds(u1, ArticleFacets())
    assert _titles(feed) == ["Hello"]
    assert feed[0].tags == ["go"]
    assert feed[0].author.following is True

    assert await article_service.read_feeds(u3, ArticleFacets()) == []


@pytest.mark.asyncio
async def test_feed_newest_first_across_authors(article_service, make_user, db_session):
    reader = await make_user("reader")
    a = await make_user("a")
    b = await make_user("b")
    await _follow(db_session, reader, a)
    await _follow(db_session, reader, b)

    await _write(article_service, a, "A1")
    await _write(article_service, b, "B1")
    await _write(article_service, a, "A2")

    feed = await article_service.read_feeds(reader, ArticleFacets())
    assert _titles(feed) == ["A2", "B1", "A1"]

    page = await article_service.read_feeds(reader, ArticleFacets(limit=1, offset=1))
    assert _titles(page) == ["B1"]


# ---------------------------------------------------------------------------
# slugify
# ---------------------------------------------------------------------------

def test_slugify():
    assert slugify("Hello World!") == "hello-world"
    assert slugify("  Spaces  Everywhere  ") == "spaces-everywhere"
    assert slugify("UPPER-case---dashes") == "upper-case-dashes"
    assert slugify("!!!") == "article"


# ---------------------------------------------------------------------------
# Delegation against mocked repository interfaces
# ---------------------------------------------------------------------------

def _mocked_service():
    social = AsyncMock(spec=SocialRepository)
    articles = AsyncMock(spec=ArticleRepository)
    favorites = AsyncMock(spec=ArticleFavoriteRepository)
    return ArticleService(social, articles, favorites), social, articles, favorites


@pytest.mark.asyncio
async def test_write_article_none_tags_saved_as_empty():
    service, _, articles, _ = _mocked_service()
    articles.exists_by_title.return_value = False
    article = Article(title="T", description="", content="C", author_id=1)
    articles.save.return_value = article

    assert await service.write_article(article, None) is article
    articles.save.assert_awaited_once_with(article, [])


@pytest.mark.asyncio
async def test_forbidden_edit_never_touches_repository():
    service, _, articles, _ = _mocked_service()
    article = Article(title="T", description="", content="C", author_id=1)

    with pytest.raises(ForbiddenError):
        await service.edit_title(User(id=2, username="x", email="x@example.com"), article, "New")
    articles.exists_by_title.assert_not_awaited()
    articles.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_feed_with_no_follows_delegates_empty_author_set():
    service, social, articles, _ = _mocked_service()
    social.find_by_follower.return_value = []
    articles.find_by_author_in_order_by_created_at_desc.return_value = []
    facets = ArticleFacets(limit=5)

    assert await service.read_feeds(User(id=1, username="u", email="u@example.com"), facets) == []
    articles.find_by_author_in_order_by_created_at_desc.assert_awaited_once_with([], facets)
