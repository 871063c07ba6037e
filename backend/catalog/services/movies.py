from uuid import UUID

from loguru import logger
from sqlmodel import Session

from catalog.core.cancellation import CancellationToken
from catalog.crud import movie as movies_crud
from catalog.exceptions.movie_exceptions import MovieValidationError, MovieWriteError
from catalog.models.movie import MovieAggregate
from catalog.validators.movie import validate_movie


def _ensure_valid(movie: MovieAggregate) -> None:
    errors = validate_movie(movie)
    if errors:
        logger.info(f"Rejected movie {movie.id}: {len(errors)} invalid field(s)")
        raise MovieValidationError(errors)


def create_movie(
    *,
    session: Session,
    movie: MovieAggregate,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate:
    """
    Validate a new movie and store it together with its genres.

    Parameters:
        session (Session): Database session.
        movie (MovieAggregate): The candidate movie, ID and slug already assigned.
        cancellation (CancellationToken | None): Aborts the database work when fired.
    Returns:
        MovieAggregate: The stored movie.
    Raises:
        MovieValidationError: If any field is invalid. Nothing is written.
        MovieConflictError: If the slug is already taken.
        MovieWriteError: If the store did not insert the movie row.
    """
    _ensure_valid(movie)
    created = movies_crud.create_movie(
        session=session,
        movie=movie,
        cancellation=cancellation,
    )
    if not created:
        raise MovieWriteError(movie.id, "create")
    return movie


def get_movie_by_id(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate | None:
    return movies_crud.get_movie_by_id(
        session=session,
        movie_id=movie_id,
        cancellation=cancellation,
    )


def get_movie_by_slug(
    *,
    session: Session,
    slug: str,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate | None:
    return movies_crud.get_movie_by_slug(
        session=session,
        slug=slug,
        cancellation=cancellation,
    )


def get_movies(
    *,
    session: Session,
    cancellation: CancellationToken | None = None,
) -> list[MovieAggregate]:
    return movies_crud.get_movies(session=session, cancellation=cancellation)


def update_movie(
    *,
    session: Session,
    movie: MovieAggregate,
    cancellation: CancellationToken | None = None,
) -> MovieAggregate | None:
    """
    Replace an existing movie and its genres.

    Parameters:
        session (Session): Database session.
        movie (MovieAggregate): The full new state of the movie.
        cancellation (CancellationToken | None): Aborts the database work when fired.
    Returns:
        MovieAggregate | None: The updated movie, or None if no movie has this ID.
    Raises:
        MovieValidationError: If any field is invalid. Nothing is written.
        MovieConflictError: If the new slug belongs to another movie.
        MovieWriteError: If the movie disappeared between the existence check
            and the update.
    """
    _ensure_valid(movie)
    exists = movies_crud.movie_exists_by_id(
        session=session,
        movie_id=movie.id,
        cancellation=cancellation,
    )
    if not exists:
        return None
    updated = movies_crud.update_movie(
        session=session,
        movie=movie,
        cancellation=cancellation,
    )
    if not updated:
        logger.warning(f"Movie {movie.id} vanished before it could be updated")
        raise MovieWriteError(movie.id, "update")
    return movie


def delete_movie_by_id(
    *,
    session: Session,
    movie_id: UUID,
    cancellation: CancellationToken | None = None,
) -> bool:
    return movies_crud.delete_movie_by_id(
        session=session,
        movie_id=movie_id,
        cancellation=cancellation,
    )
