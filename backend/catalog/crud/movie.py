from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from loguru import logger
from psycopg.errors import UniqueViolation
from sqlalchemy import delete, exists, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.sql.expression import Executable
from sqlmodel import Session

from catalog.core.cancellation import CancellationToken
from catalog.core.db import transaction
from catalog.exceptions.base import OperationCancelledError, StorageUnavailableError
from catalog.exceptions.movie_exceptions import MovieConflictError
from catalog.models.movie import GENRE_DELIMITER, MovieAggregate, genres, movies


def split_genres(aggregated: str | None) -> list[str]:
    """
    Turn the delimited genre list produced by the database back into a list.
    A movie without genres aggregates to NULL (or an empty string), which must
    become an empty list and never [""].
    """
    if not aggregated:
        return []
    return aggregated.split(GENRE_DELIMITER)


def is_unique_violation(error: IntegrityError) -> bool:
    if isinstance(error.orig, UniqueViolation):
        return True
    # sqlite3 has no dedicated exception class for unique violations
    return "UNIQUE constraint failed" in str(error.orig)


def _interrupt(dbapi_connection: Any) -> None:
    # psycopg exposes cancel(), sqlite3 exposes interrupt()
    cancel = getattr(dbapi_connection, "cancel", None) or getattr(
        dbapi_connection, "interrupt", None
    )
    if cancel is not None:
        cancel()


@contextmanager
def _cancellable(
    session: Session, cancellation: CancellationToken | None
) -> Iterator[None]:
    """
    Interrupt the statement running on the session's connection when the token
    fires, and report the outcome as a cancellation instead of a driver error.
    """
    if cancellation is None:
        try:
            yield
        except OperationalError as e:
            logger.error(f"Database operation failed: {e}")
            raise StorageUnavailableError() from e
        return

    cancellation.raise_if_cancelled()
    dbapi_connection = session.connection().connection.dbapi_connection
    unregister = cancellation.register(lambda: _interrupt(dbapi_connection))
    try:
        yield
    except DBAPIError as e:
        if cancellation.cancelled:
            raise OperationCancelledError() from e
        if isinstance(e, OperationalError):
            logger.error(f"Database operation failed: {e}")
            raise StorageUnavailableError() from e
        raise
    finally:
        unregister()


def _execute(
    session: Session,
    statement: Executable,
    cancellation: CancellationToken | None,
) -> Any:
    if cancellation is not None:
        cancellation.raise_if_cancelled()
    return session.execute(statement)


def _insert_genres(
    session: Session,
    movie: MovieAggregate,
    cancellation: CancellationToken | None,
) -> None:
    for genre in movie.genres:
        _execute(
            session,
            insert(genres).values(movieid=movie.id, name=genre),
            cancellation,
        )


def _to_aggregate(row: Row[Any], genre_names: list[str]) -> MovieAggregate:
    return MovieAggregate(
        id=row.id,
        title=row.title,
        slug=row.slug,
        year_of_release=row.yearofrelease,
        genres=genre_names,
    )


def _get_movie_where(
    session: Session,
    condition: Any,
    cancellation: CancellationToken | None,
) -> MovieAggregate | None:
    with _cancellable(session, cancellation):
        row = _execute(
            session,
            select(movies).where(condition),
            cancellation,
        ).one_or_none()
        if row is None:
            return None
        genre_names = get_genres_for_movie(
            session=session,
            movie_id=row.id,
            cancellation=cancellation,
        )
    return _to_aggregate(row, genre_names)


def create_movie(
    *,
    session: Session,
    movie: MovieAggregate,
    cancellation: CancellationToken | None = None,
) -> bool:
    """
    Insert a movie and its genre rows in a single transaction.

    Parameters:
        session (Session): The database session.
        movie (MovieAggregate): The validated movie to insert.
        cancellation (CancellationToken | None): Aborts the transaction when fired.
    Returns:
        bool: True if exactly one movie row was inserted.
    Raises:
        MovieConflictError: If the slug or ID is already taken.
    """
    with transaction(session), _cancellable(session, cancellation):
        try:
            result = _execute(
                session,
                insert(movies).values(
                    id=movie.id,
                    title=movie.title,
                    slug=movie.slug,
                    yearofrelease=movie.year_of_release,
                ),
                cancellation,
            )
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            logger.warning(f"Movie {movie.id} conflicts with slug '{movie.slug}'")
            raise MovieConflictError(slug=movie.slug, movie_id=movie.id) from e

        if result.rowcount != 1:
            session.rollback()
            return False

        _insert_genres(session, movie, cancellation)

    logger.info(f"Created movie {movie.id} with {len(movie.genres)} genres")
    return True


def get_movie_by_id(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate | None:
    """
    Retrieve a movie with all of its genres by ID.

    Returns:
        MovieAggregate | None: The movie, or None if no row matches.
    """
    return _get_movie_where(session, movies.c.id == movie_id, cancellation)


def get_movie_by_slug(
    *,
    session: Session,
    slug: str,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate | None:
    """
    Retrieve a movie with all of its genres by slug.

    Returns:
        MovieAggregate | None: The movie, or None if no row matches.
    """
    return _get_movie_where(session, movies.c.slug == slug, cancellation)


def get_genres_for_movie(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> list[str]:
    # No ordering column exists, so the order of the names is not guaranteed
    stmt = select(genres.c.name).where(genres.c.movieid == movie_id)
    with _cancellable(session, cancellation):
        return list(_execute(session, stmt, cancellation).scalars().all())


def get_movies(
    *,
    session: Session,
    cancellation: CancellationToken | None = None,
) -> list[MovieAggregate]:
    """
    Retrieve every movie with its genres, aggregated by the database into one
    row per movie. Movies without genres are kept by the outer join.
    """
    stmt = (
        select(
            movies.c.id,
            movies.c.title,
            movies.c.slug,
            movies.c.yearofrelease,
            func.aggregate_strings(genres.c.name, GENRE_DELIMITER).label("genres"),
        )
        .select_from(movies.outerjoin(genres, genres.c.movieid == movies.c.id))
        .group_by(
            movies.c.id,
            movies.c.title,
            movies.c.slug,
            movies.c.yearofrelease,
        )
        .order_by(movies.c.title, movies.c.id)
    )
    with _cancellable(session, cancellation):
        rows = _execute(session, stmt, cancellation).all()
    return [_to_aggregate(row, split_genres(row.genres)) for row in rows]


def update_movie(
    *,
    session: Session,
    movie: MovieAggregate,
    cancellation: CancellationToken | None = None,
) -> bool:
    """
    Replace a movie's title, slug, year and genres in a single transaction.
    The movie row is updated first, the genres are only rewritten once that
    update is known to have hit a row.

    Returns:
        bool: False (with nothing written) if no movie has this ID.
    Raises:
        MovieConflictError: If the new slug belongs to another movie.
    """
    with transaction(session), _cancellable(session, cancellation):
        try:
            result = _execute(
                session,
                update(movies)
                .where(movies.c.id == movie.id)
                .values(
                    title=movie.title,
                    slug=movie.slug,
                    yearofrelease=movie.year_of_release,
                ),
                cancellation,
            )
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            logger.warning(f"Update of movie {movie.id} conflicts with slug '{movie.slug}'")
            raise MovieConflictError(slug=movie.slug, movie_id=movie.id) from e

        if result.rowcount == 0:
            session.rollback()
            return False

        _execute(
            session,
            delete(genres).where(genres.c.movieid == movie.id),
            cancellation,
        )
        _insert_genres(session, movie, cancellation)

    logger.info(f"Updated movie {movie.id}")
    return True


def delete_movie_by_id(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> bool:
    """
    Delete a movie and all of its genre rows in a single transaction.

    Returns:
        bool: True if a movie row was deleted.
    """
    with transaction(session), _cancellable(session, cancellation):
        _execute(
            session,
            delete(genres).where(genres.c.movieid == movie_id),
            cancellation,
        )
        result = _execute(
            session,
            delete(movies).where(movies.c.id == movie_id),
            cancellation,
        )
        deleted = result.rowcount > 0

    if deleted:
        logger.info(f"Deleted movie {movie_id}")
    return deleted


def movie_exists_by_id(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> bool:
    stmt = select(exists().where(movies.c.id == movie_id))
    with _cancellable(session, cancellation):
        return bool(_execute(session, stmt, cancellation).scalar())
