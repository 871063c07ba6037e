from collections.abc import Callable
from threading import Barrier, Thread
from uuid import uuid4

import pytest
from sqlalchemy import event, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from catalog.core.cancellation import CancellationToken
from catalog.core.db import acquire_session
from catalog.crud import movie as movie_crud
from catalog.exceptions.base import OperationCancelledError
from catalog.exceptions.movie_exceptions import MovieConflictError
from catalog.models.movie import MovieAggregate, genres, movies


def _count_genre_rows(session: Session, movie_id) -> int:
    stmt = select(func.count()).select_from(genres).where(genres.c.movieid == movie_id)
    return session.execute(stmt).scalar_one()


def test_create_movie_then_get_by_id_round_trips(
    *,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory(genres=["Action", "Drama", "Thriller"])

    created = movie_crud.create_movie(session=db_session, movie=movie)
    retrieved = movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id)

    assert created is True
    assert retrieved is not None
    assert retrieved.id == movie.id
    assert retrieved.title == movie.title
    assert retrieved.slug == movie.slug
    assert retrieved.year_of_release == movie.year_of_release
    assert sorted(retrieved.genres) == sorted(movie.genres)


def test_create_movie_keeps_duplicate_genres(
    *,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory(genres=["Drama", "Drama"])

    movie_crud.create_movie(session=db_session, movie=movie)

    assert movie_crud.get_genres_for_movie(
        session=db_session, movie_id=movie.id
    ) == ["Drama", "Drama"]


def test_create_movie_duplicate_slug_conflicts(
    *,
    db_session: Session,
    movie_factory,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    existing = stored_movie_factory(genres=["Action", "Drama"])
    duplicate: MovieAggregate = movie_factory(slug=existing.slug, genres=["Horror"])

    with pytest.raises(MovieConflictError) as exc_info:
        movie_crud.create_movie(session=db_session, movie=duplicate)

    assert exc_info.value.slug == existing.slug
    retrieved = movie_crud.get_movie_by_id(session=db_session, movie_id=existing.id)
    assert retrieved is not None
    assert sorted(retrieved.genres) == ["Action", "Drama"]
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=duplicate.id) == []


def test_create_movie_duplicate_id_conflicts(
    *,
    db_session: Session,
    movie_factory,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    existing = stored_movie_factory()
    duplicate: MovieAggregate = movie_factory(id=existing.id)

    with pytest.raises(MovieConflictError):
        movie_crud.create_movie(session=db_session, movie=duplicate)

    assert _count_genre_rows(db_session, existing.id) == len(existing.genres)


def test_create_movie_rolls_back_when_a_genre_insert_fails(
    *,
    test_engine: Engine,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory(genres=["Action", "Drama"])

    def fail_on_second_genre(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("INSERT INTO genres") and "Drama" in str(parameters):
            raise RuntimeError("connection lost")

    event.listen(test_engine, "before_cursor_execute", fail_on_second_genre)
    try:
        with pytest.raises(RuntimeError):
            movie_crud.create_movie(session=db_session, movie=movie)
    finally:
        event.remove(test_engine, "before_cursor_execute", fail_on_second_genre)

    assert movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id) is None
    assert _count_genre_rows(db_session, movie.id) == 0


def test_get_movie_by_id_not_found(
    *,
    db_session: Session,
):
    assert movie_crud.get_movie_by_id(session=db_session, movie_id=uuid4()) is None


def test_get_movie_by_slug_success(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory(genres=["Sci-Fi"])
    stored_movie_factory()

    retrieved = movie_crud.get_movie_by_slug(session=db_session, slug=movie.slug)

    assert retrieved is not None
    assert retrieved.id == movie.id
    assert retrieved.genres == ["Sci-Fi"]


def test_get_movie_by_slug_not_found(
    *,
    db_session: Session,
):
    assert movie_crud.get_movie_by_slug(session=db_session, slug="nonexistent-slug") is None


def test_get_movies_aggregates_genres(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    first = stored_movie_factory(genres=["Action", "Drama"])
    second = stored_movie_factory(genres=["Comedy"])

    retrieved = {movie.id: movie for movie in movie_crud.get_movies(session=db_session)}

    assert set(retrieved) == {first.id, second.id}
    assert sorted(retrieved[first.id].genres) == ["Action", "Drama"]
    assert retrieved[second.id].genres == ["Comedy"]
    assert retrieved[first.id].slug == first.slug


def test_get_movies_keeps_movie_without_genres(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory(genres=[])

    retrieved = movie_crud.get_movies(session=db_session)

    assert len(retrieved) == 1
    assert retrieved[0].id == movie.id
    assert retrieved[0].genres == []


def test_get_movies_empty(
    *,
    db_session: Session,
):
    assert movie_crud.get_movies(session=db_session) == []


@pytest.mark.parametrize(
    "aggregated, expected",
    [
        (None, []),
        ("", []),
        ("Action", ["Action"]),
        ("Action,Drama", ["Action", "Drama"]),
    ],
)
def test_split_genres(aggregated, expected):
    assert movie_crud.split_genres(aggregated) == expected


def test_update_movie_replaces_genres(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory(genres=["Action", "Drama"])
    changed = movie.model_copy(
        update={
            "title": "New Title",
            "slug": "new-title-1999",
            "year_of_release": 1999,
            "genres": ["Comedy"],
        }
    )

    updated = movie_crud.update_movie(session=db_session, movie=changed)

    assert updated is True
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=movie.id) == ["Comedy"]
    retrieved = movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id)
    assert retrieved is not None
    assert retrieved.title == "New Title"
    assert retrieved.slug == "new-title-1999"
    assert retrieved.year_of_release == 1999


def test_update_movie_not_found_writes_nothing(
    *,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory(genres=["Action"])

    updated = movie_crud.update_movie(session=db_session, movie=movie)

    assert updated is False
    assert _count_genre_rows(db_session, movie.id) == 0
    assert movie_crud.get_movies(session=db_session) == []


def test_update_movie_slug_conflict_keeps_both_movies(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    first = stored_movie_factory(genres=["Action"])
    second = stored_movie_factory(genres=["Drama"])
    changed = second.model_copy(update={"slug": first.slug, "genres": ["Western"]})

    with pytest.raises(MovieConflictError):
        movie_crud.update_movie(session=db_session, movie=changed)

    retrieved = movie_crud.get_movie_by_id(session=db_session, movie_id=second.id)
    assert retrieved is not None
    assert retrieved.slug == second.slug
    assert retrieved.genres == ["Drama"]


def test_delete_movie_by_id_removes_movie_and_genres(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory(genres=["Action", "Drama"])
    other = stored_movie_factory(genres=["Comedy"])

    deleted = movie_crud.delete_movie_by_id(session=db_session, movie_id=movie.id)

    assert deleted is True
    assert movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id) is None
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=movie.id) == []
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=other.id) == ["Comedy"]


def test_delete_movie_by_id_not_found(
    *,
    db_session: Session,
):
    assert movie_crud.delete_movie_by_id(session=db_session, movie_id=uuid4()) is False


def test_movie_exists_by_id(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory()

    assert movie_crud.movie_exists_by_id(session=db_session, movie_id=movie.id) is True
    assert movie_crud.movie_exists_by_id(session=db_session, movie_id=uuid4()) is False


def test_create_movie_cancelled_before_start_writes_nothing(
    *,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory()
    cancellation = CancellationToken()
    cancellation.cancel()

    with pytest.raises(OperationCancelledError):
        movie_crud.create_movie(session=db_session, movie=movie, cancellation=cancellation)

    assert movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id) is None


def test_create_movie_cancelled_midway_rolls_back(
    *,
    test_engine: Engine,
    db_session: Session,
    movie_factory,
):
    movie: MovieAggregate = movie_factory(genres=["Action", "Drama"])
    cancellation = CancellationToken()

    def cancel_after_movie_insert(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("INSERT INTO movies"):
            cancellation.cancel()

    event.listen(test_engine, "after_cursor_execute", cancel_after_movie_insert)
    try:
        with pytest.raises(OperationCancelledError):
            movie_crud.create_movie(
                session=db_session, movie=movie, cancellation=cancellation
            )
    finally:
        event.remove(test_engine, "after_cursor_execute", cancel_after_movie_insert)

    assert movie_crud.get_movie_by_id(session=db_session, movie_id=movie.id) is None
    assert _count_genre_rows(db_session, movie.id) == 0


def test_update_movie_cancelled_keeps_previous_state(
    *,
    db_session: Session,
    stored_movie_factory: Callable[..., MovieAggregate],
):
    movie = stored_movie_factory(genres=["Action"])
    cancellation = CancellationToken()
    cancellation.cancel()

    with pytest.raises(OperationCancelledError):
        movie_crud.update_movie(
            session=db_session,
            movie=movie.model_copy(update={"genres": ["Comedy"]}),
            cancellation=cancellation,
        )

    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=movie.id) == ["Action"]


def test_genre_rows_require_an_existing_movie(
    *,
    db_session: Session,
):
    with pytest.raises(IntegrityError):
        db_session.execute(insert(genres).values(movieid=uuid4(), name="Orphan"))
        db_session.flush()
    db_session.rollback()


def test_concurrent_creates_with_same_slug(
    *,
    test_engine: Engine,
    db_session: Session,
    movie_factory,
):
    first: MovieAggregate = movie_factory(genres=["Action"])
    second: MovieAggregate = movie_factory(slug=first.slug, genres=["Drama"])
    barrier = Barrier(2)
    outcomes: dict[str, str] = {}

    def create(name: str, movie: MovieAggregate) -> None:
        with acquire_session(test_engine) as session:
            barrier.wait()
            try:
                movie_crud.create_movie(session=session, movie=movie)
                outcomes[name] = "created"
            except MovieConflictError:
                outcomes[name] = "conflict"

    threads = [
        Thread(target=create, args=("first", first)),
        Thread(target=create, args=("second", second)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes.values()) == ["conflict", "created"]
    count = db_session.execute(
        select(func.count()).select_from(movies).where(movies.c.slug == first.slug)
    ).scalar_one()
    assert count == 1
    winner = first if outcomes["first"] == "created" else second
    loser = second if winner is first else first
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=winner.id) == winner.genres
    assert movie_crud.get_genres_for_movie(session=db_session, movie_id=loser.id) == []
