from .movie import (
    create_movie,
    delete_movie_by_id,
    get_genres_for_movie,
    get_movie_by_id,
    get_movie_by_slug,
    get_movies,
    movie_exists_by_id,
    update_movie,
)
