# Repository package.
#
# ``interfaces`` declares the abstract collaborators ArticleService is
# built from; the ``SqlAlchemy*`` classes implement them over a single
# AsyncSession and flush without committing:
#
#   social_repository            — follow edges (follower -> following)
#   article_repository           — article lookup, listing, persistence, projections
#   article_favorite_repository  — favorite markers per (user, article)
from app.repositories.article_favorite_repository import SqlAlchemyArticleFavoriteRepository
from app.repositories.article_repository import SqlAlchemyArticleRepository
from app.repositories.social_repository import SqlAlchemySocialRepository

__all__ = [
    "SqlAlchemyArticleFavoriteRepository",
    "SqlAlchemyArticleRepository",
    "SqlAlchemySocialRepository",
]
