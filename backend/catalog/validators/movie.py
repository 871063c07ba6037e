from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from catalog.models.movie import GENRE_DELIMITER, MovieAggregate
from catalog.schemas.movie import FieldError

__all__ = [
    "EARLIEST_RELEASE_YEAR",
    "SLUG_PATTERN",
    "validate_movie",
]

EARLIEST_RELEASE_YEAR = 1888
SLUG_PATTERN = r"^[a-z0-9_]+(-+[a-z0-9_]+)*$"

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _without_delimiter(genre: str) -> str:
    if GENRE_DELIMITER in genre:
        raise ValueError(f"Genres must not contain '{GENRE_DELIMITER}'")
    return genre


Genre = Annotated[NonBlank, AfterValidator(_without_delimiter)]


class _MovieRules(BaseModel):
    id: UUID
    title: NonBlank
    slug: Annotated[str, Field(pattern=SLUG_PATTERN)]
    year_of_release: int
    genres: list[Genre]

    @field_validator("id")
    @classmethod
    def id_not_nil(cls, value: UUID) -> UUID:
        if value.int == 0:
            raise ValueError("ID must not be empty")
        return value

    @field_validator("year_of_release")
    @classmethod
    def year_is_plausible(cls, value: int) -> int:
        current_year = datetime.now(timezone.utc).year
        if not EARLIEST_RELEASE_YEAR <= value <= current_year:
            raise ValueError(
                f"Year of release must be between {EARLIEST_RELEASE_YEAR} and {current_year}"
            )
        return value


def _field_name(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def validate_movie(movie: MovieAggregate) -> list[FieldError]:
    """
    Check a candidate movie before it is written.

    Parameters:
        movie (MovieAggregate): The candidate movie.
    Returns:
        list[FieldError]: Every failing field, empty if the movie is valid.
    """
    try:
        _MovieRules.model_validate(movie.model_dump())
    except ValidationError as e:
        return [
            FieldError(field=_field_name(error["loc"]), message=error["msg"])
            for error in e.errors()
        ]
    return []
