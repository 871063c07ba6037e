from uuid import UUID

from sqlalchemy import Column, ForeignKey, Index, Integer, Table, Text, Uuid
from sqlmodel import Field, SQLModel

__all__ = [
    "GENRE_DELIMITER",
    "MovieBase",
    "Movie",
    "MovieAggregate",
    "genres",
    "movies",
]

# Separator used when the database aggregates genre names into a single column.
GENRE_DELIMITER = ","


# Shared properties
class MovieBase(SQLModel):
    title: str
    slug: str
    year_of_release: int


# Database model, one row per movie
class Movie(MovieBase, table=True):
    __tablename__ = "movies"
    __table_args__ = (Index("movies_slug_idx", "slug", unique=True),)

    id: UUID = Field(sa_column=Column("id", Uuid, primary_key=True))
    title: str = Field(sa_column=Column("title", Text, nullable=False))
    slug: str = Field(sa_column=Column("slug", Text, nullable=False))
    year_of_release: int = Field(
        sa_column=Column("yearofrelease", Integer, nullable=False)
    )


movies: Table = Movie.__table__  # type: ignore[attr-defined]

# Genre rows have no identity of their own and are always replaced as a set,
# so they live in a plain table without a primary key. Deleting them together
# with their movie is the store's job, there is no ON DELETE CASCADE.
genres = Table(
    "genres",
    SQLModel.metadata,
    Column("movieid", Uuid, ForeignKey("movies.id")),
    Column("name", Text, nullable=False),
)


# A movie together with its genre rows
class MovieAggregate(MovieBase):
    id: UUID
    genres: list[str] = Field(default_factory=list)
