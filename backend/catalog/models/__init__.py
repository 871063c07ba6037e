from .movie import GENRE_DELIMITER, Movie, MovieAggregate, MovieBase, genres, movies

__all__ = [
    "GENRE_DELIMITER",
    "Movie",
    "MovieAggregate",
    "MovieBase",
    "genres",
    "movies",
]
