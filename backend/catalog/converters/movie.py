import re
from uuid import UUID, uuid4

from catalog.models.movie import MovieAggregate
from catalog.schemas.movie import (
    CreateMovieRequest,
    MovieResponse,
    MoviesResponse,
    UpdateMovieRequest,
)

_DISALLOWED_SLUG_CHARS = re.compile(r"[^0-9a-z _-]")
_WHITESPACE = re.compile(r"\s+")


def generate_slug(title: str, year_of_release: int) -> str:
    """
    Build the URL-safe slug for a movie, e.g. "Nick the Greek" (2023)
    becomes "nick-the-greek-2023".
    """
    cleaned = _DISALLOWED_SLUG_CHARS.sub("", title.lower()).strip()
    cleaned = _WHITESPACE.sub("-", cleaned)
    return f"{cleaned}-{year_of_release}" if cleaned else str(year_of_release)


def from_create_request(request: CreateMovieRequest) -> MovieAggregate:
    return MovieAggregate(
        id=uuid4(),
        title=request.title,
        slug=generate_slug(request.title, request.year_of_release),
        year_of_release=request.year_of_release,
        genres=list(request.genres),
    )


def from_update_request(movie_id: UUID, request: UpdateMovieRequest) -> MovieAggregate:
    return MovieAggregate(
        id=movie_id,
        title=request.title,
        slug=generate_slug(request.title, request.year_of_release),
        year_of_release=request.year_of_release,
        genres=list(request.genres),
    )


def to_response(movie: MovieAggregate) -> MovieResponse:
    return MovieResponse.model_validate(movie.model_dump())


def to_responses(movies: list[MovieAggregate]) -> MoviesResponse:
    return MoviesResponse(items=[to_response(movie) for movie in movies])
