"""Database seeder: users, follow edges, tagged articles and favorites."""
import asyncio
import argparse
import random
import time
from app.database import engine, async_session, Base
from app.exceptions import ConflictError
from app.models import Article, Tag, User, UserFollow
from app.repositories import (
    SqlAlchemyArticleFavoriteRepository,
    SqlAlchemyArticleRepository,
    SqlAlchemySocialRepository,
)
from app.services.article_service import ArticleService

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]

async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000
    follows_per_user = 3 if small else 10
    favorites_per_user = 5 if small else 40

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        social = SqlAlchemySocialRepository(session)
        service = ArticleService(
            social_repository=social,
            article_repository=SqlAlchemyArticleRepository(session),
            article_favorite_repository=SqlAlchemyArticleFavoriteRepository(session),
        )

        users = []
        for i in range(num_users):
            user = User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                bio=f"I am test user number {i}. I write about technology.",
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        total_follows = 0
        for user in users:
            others = [u for u in users if u.id != user.id]
            for following in random.sample(others, k=min(follows_per_user, len(others))):
                await social.save(UserFollow(follower_id=user.id, following_id=following.id))
                total_follows += 1
        print(f"  Created {total_follows} follow edges")

        articles = []
        for i in range(num_articles):
            article = Article(
                title=f"Article {i}: How to optimize {random.choice(TAGS)} applications",
                description=f"A guide to optimizing {random.choice(TAGS)} applications for production.",
                content=f"This is the full content of article {i}. " * 20,
                author_id=random.choice(users).id,
            )
            tags = [Tag(name=name) for name in random.sample(TAGS, k=random.randint(1, 4))]
            articles.append(await service.write_article(article, tags))
            if (i + 1) % 500 == 0:
                print(f"  {i + 1} articles written")

        total_favorites = 0
        for user in users:
            for article in random.sample(articles, k=min(favorites_per_user, len(articles))):
                try:
                    await service.favorite_article(user, article)
                    total_favorites += 1
                except ConflictError:
                    continue

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Follows: {total_follows}")
    print(f"  Articles: {num_articles}")
    print(f"  Favorites: {total_favorites}")
    print(f"  Tags: {len(TAGS)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
