"""
Service-layer errors.

Every error is an HTTPException so routes can let it propagate; the
handlers in main.py render all of them as ``{"error": detail}``.
"""
from typing import Optional
from fastapi import HTTPException, status


class UpstreamUnavailableError(HTTPException):
    """TMDB returned a non-2xx status or could not be reached"""

    def __init__(self, detail: str, upstream_status: Optional[int] = None):
        code = upstream_status if upstream_status and upstream_status >= 400 else status.HTTP_500_INTERNAL_SERVER_ERROR
        super().__init__(status_code=code, detail=detail)
        self.upstream_status = upstream_status


class NotCachedError(HTTPException):
    """Watchlist write referencing a movie that is not in the catalog cache"""

    def __init__(self, tmdb_id: int):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Movie not cached")
        self.tmdb_id = tmdb_id


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthenticatedError(HTTPException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Not allowed to act for this user"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
