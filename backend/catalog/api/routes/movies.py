from uuid import UUID

from fastapi import APIRouter, Response, status

from catalog.api.deps import CancellationDep, SessionDep
from catalog.converters import movie as movie_converters
from catalog.core.config import settings
from catalog.exceptions.movie_exceptions import MovieNotFoundError
from catalog.schemas.movie import (
    CreateMovieRequest,
    MovieResponse,
    MoviesResponse,
    UpdateMovieRequest,
)
from catalog.services import movies as movies_service

router = APIRouter(prefix="/movies", tags=["movies"])


@router.post("/", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def create_movie(
    *,
    session: SessionDep,
    cancellation: CancellationDep,
    request: CreateMovieRequest,
    response: Response,
) -> MovieResponse:
    movie = movies_service.create_movie(
        session=session,
        movie=movie_converters.from_create_request(request),
        cancellation=cancellation,
    )
    response.headers["Location"] = f"{settings.API_PREFIX}{router.prefix}/{movie.id}"
    return movie_converters.to_response(movie)


@router.get("/", response_model=MoviesResponse)
def read_movies(
    session: SessionDep,
    cancellation: CancellationDep,
) -> MoviesResponse:
    movies = movies_service.get_movies(session=session, cancellation=cancellation)
    return movie_converters.to_responses(movies)


# KEEP AT THE BOTTOM
@router.get("/{id_or_slug}", response_model=MovieResponse)
def read_movie(
    *,
    session: SessionDep,
    cancellation: CancellationDep,
    id_or_slug: str,
) -> MovieResponse:
    try:
        movie_id = UUID(id_or_slug)
    except ValueError:
        movie = movies_service.get_movie_by_slug(
            session=session,
            slug=id_or_slug,
            cancellation=cancellation,
        )
    else:
        movie = movies_service.get_movie_by_id(
            session=session,
            movie_id=movie_id,
            cancellation=cancellation,
        )
    if movie is None:
        raise MovieNotFoundError(id_or_slug)
    return movie_converters.to_response(movie)


@router.put("/{id}", response_model=MovieResponse)
def update_movie(
    *,
    session: SessionDep,
    cancellation: CancellationDep,
    id: UUID,
    request: UpdateMovieRequest,
) -> MovieResponse:
    movie = movies_service.update_movie(
        session=session,
        movie=movie_converters.from_update_request(id, request),
        cancellation=cancellation,
    )
    if movie is None:
        raise MovieNotFoundError(id)
    return movie_converters.to_response(movie)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_movie(
    *,
    session: SessionDep,
    cancellation: CancellationDep,
    id: UUID,
) -> Response:
    deleted = movies_service.delete_movie_by_id(
        session=session,
        movie_id=id,
        cancellation=cancellation,
    )
    if not deleted:
        raise MovieNotFoundError(id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
