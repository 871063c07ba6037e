from uuid import UUID

from sqlmodel import Field, SQLModel

__all__ = [
    "FieldError",
    "CreateMovieRequest",
    "UpdateMovieRequest",
    "MovieResponse",
    "MoviesResponse",
]


class FieldError(SQLModel):
    field: str
    message: str


class CreateMovieRequest(SQLModel):
    title: str
    year_of_release: int
    genres: list[str] = Field(default_factory=list)


class UpdateMovieRequest(SQLModel):
    title: str
    year_of_release: int
    genres: list[str] = Field(default_factory=list)


class MovieResponse(SQLModel):
    id: UUID
    title: str
    slug: str
    year_of_release: int
    genres: list[str]


class MoviesResponse(SQLModel):
    items: list[MovieResponse]
