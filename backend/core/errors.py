"""HTTP error taxonomy shared by the auth and student routes."""

from fastapi import HTTPException, status


class InvalidInput(HTTPException):
    """Malformed or missing input."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    """Missing, invalid or expired token, or bad credentials."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFound(HTTPException):
    """Resource absent, or owned by someone else."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InternalError(HTTPException):
    """Unexpected failure. The message never carries internal detail."""

    def __init__(self, detail: str = "Server error") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
