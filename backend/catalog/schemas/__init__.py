from .movie import (
    CreateMovieRequest,
    FieldError,
    MovieResponse,
    MoviesResponse,
    UpdateMovieRequest,
)

__all__ = [
    "CreateMovieRequest",
    "FieldError",
    "MovieResponse",
    "MoviesResponse",
    "UpdateMovieRequest",
]
