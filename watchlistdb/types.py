"""Type definitions for WatchlistDB.

This module provides TypedDict definitions for TMDB API responses, providing
IDE autocomplete, type checking, and clear documentation of the payloads the
metadata adapter consumes.

Every field is ``NotRequired``: TMDB omits or nulls fields freely, and the
mapping in :mod:`watchlistdb.metadata` applies explicit fallbacks.

Reference:
    - PEP 589 TypedDict: https://peps.python.org/pep-0589/
    - TMDB API v3: https://developer.themoviedb.org/reference/intro/getting-started

Example:
    >>> from watchlistdb.types import TmdbMovieData
    >>> movie: TmdbMovieData = {
    ...     "id": 27205,
    ...     "title": "Inception",
    ...     "release_date": "2010-07-15",
    ...     "runtime": 148,
    ...     "genres": [{"id": 28, "name": "Action"}],
    ...     "poster_path": "/9gk7adHYeDvHkCSEqAvQNLV5Uge.jpg",
    ... }
"""

from typing import NotRequired, TypedDict


# =============================================================================
# Core Entity Types
# =============================================================================


class TmdbGenreData(TypedDict, total=False):
    """Genre entry as embedded in movie details."""

    id: NotRequired[int]
    name: NotRequired[str]


class TmdbMovieData(TypedDict, total=False):
    """Movie as returned by ``/movie/{id}`` or inside a result page.

    List endpoints return ``genre_ids`` instead of ``genres`` and no
    ``runtime``; details return ``genres`` and ``runtime``.

    Attributes:
        id: TMDB movie id
        title: Localized title
        original_title: Title in the original language
        overview: Plot summary
        release_date: ``YYYY-MM-DD`` (may be empty)
        runtime: Minutes (details only)
        genres: Genre objects (details only)
        genre_ids: Genre ids (list endpoints only)
        poster_path: Relative poster path, prefixed with the image base URL
    """

    id: NotRequired[int]
    title: NotRequired[str | None]
    original_title: NotRequired[str | None]
    overview: NotRequired[str | None]
    release_date: NotRequired[str | None]
    runtime: NotRequired[int | None]
    genres: NotRequired[list[TmdbGenreData]]
    genre_ids: NotRequired[list[int]]
    poster_path: NotRequired[str | None]
    backdrop_path: NotRequired[str | None]
    vote_average: NotRequired[float]
    vote_count: NotRequired[int]
    popularity: NotRequired[float]


# =============================================================================
# Response Wrappers
# =============================================================================


class TmdbMoviePage(TypedDict, total=False):
    """Paged list response (search, popular, top rated, upcoming, recommendations)."""

    page: NotRequired[int]
    results: NotRequired[list[TmdbMovieData]]
    total_pages: NotRequired[int]
    total_results: NotRequired[int]


class TmdbErrorData(TypedDict, total=False):
    """Error body returned with 4xx responses."""

    status_code: NotRequired[int]
    status_message: NotRequired[str]
    success: NotRequired[bool]


__all__ = [
    "TmdbGenreData",
    "TmdbMovieData",
    "TmdbMoviePage",
    "TmdbErrorData",
]
