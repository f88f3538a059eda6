"""Error taxonomy shared by repositories, routers and exception handlers.

Repositories raise these; ``api.main`` turns them into ``ErrorResponse``
bodies with the matching status code.
"""

from fastapi import status


class CatalogError(Exception):
    """Base class for every error the service reports to a caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(CatalogError):
    """Missing, malformed, expired or forged credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(CatalogError):
    """Valid credential without the required role or ownership."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CatalogError):
    status_code = status.HTTP_409_CONFLICT


class StoreFailure(CatalogError):
    """The relational store failed; never retried, never leaks internals."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
