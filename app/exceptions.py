"""
Domain errors raised by the service layer.

Services raise these and never catch them; the exception handler
registered in ``app.main`` turns each one into a JSON response using the
``status_code`` carried by the error class.
"""


class ArticleServiceError(Exception):
    """Base class for all business-rule failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(ArticleServiceError):
    """The requested entity does not exist."""

    status_code = 404


class ConflictError(ArticleServiceError):
    """A uniqueness or state invariant would be violated."""

    status_code = 409


class ForbiddenError(ArticleServiceError):
    """The requester may not mutate the target entity."""

    status_code = 403
