from uuid import UUID

from fastapi import status

from catalog.schemas.movie import FieldError

from .base import AppError


class MovieNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, id_or_slug: UUID | str):
        self.id_or_slug = id_or_slug
        detail = f"Movie '{id_or_slug}' not found."
        super().__init__(detail)


class MovieValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        fields = ", ".join(sorted({error.field for error in errors}))
        super().__init__(f"Movie validation failed for: {fields}")


class MovieConflictError(AppError):
    """Raised when a write collides with the unique slug index or primary key."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, *, slug: str, movie_id: UUID):
        self.slug = slug
        self.movie_id = movie_id
        detail = f"A movie with slug '{slug}' or ID {movie_id} already exists."
        super().__init__(detail)


class MovieWriteError(AppError):
    """Raised when the store reports that a write affected no rows."""

    def __init__(self, movie_id: UUID, operation: str):
        self.movie_id = movie_id
        self.operation = operation
        detail = f"Could not {operation} movie with ID {movie_id}."
        super().__init__(detail)
