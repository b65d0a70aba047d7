"""
Error taxonomy for the MovieCritic API.

Services raise these directly; FastAPI's HTTPException handler turns them
into ``{"detail": ...}`` responses with the matching status code.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Malformed or out-of-range input"""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFound(HTTPException):
    """Referenced entity does not exist"""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class StoreError(HTTPException):
    """Persistence failure. The detail is generic so no internals leak."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
