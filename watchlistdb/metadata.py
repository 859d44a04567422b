"""Metadata provider adapter models and mapping.

TMDB payloads are loosely shaped: fields go missing, arrive as null, or
differ between list and details endpoints. This module turns them into a
typed partial :class:`MetadataRecord` field by field, applying one explicit
fallback per field, and converts a record into a :class:`MovieRequest` for
adoption into a user's list.

Example:
    >>> record = map_tmdb_movie({"id": 27205, "title": "Inception",
    ...                          "release_date": "2010-07-15", "runtime": 148})
    >>> record.release_year, record.runtime_minutes
    (2010, 148)
    >>> request = to_movie_request(record)
    >>> request.external_id
    27205
"""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from watchlistdb.config import settings
from watchlistdb.models import MovieRequest, MovieStatus
from watchlistdb.utils import clean_text, coerce_int, parse_release_year

# TMDB movie genre ids, used when a list endpoint returns ``genre_ids`` only.
TMDB_GENRES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}


# =============================================================================
# Records
# =============================================================================


class MetadataRecord(BaseModel):
    """Typed partial movie record from the metadata provider.

    Every field is optional; absence means the provider did not supply a
    usable value.

    Attributes:
        external_id: TMDB movie id
        title: Title (falls back to the original-language title)
        genre: First genre name
        release_year: Year part of the release date
        runtime_minutes: Runtime in minutes (details endpoint only)
        poster_url: Absolute poster URL
        overview: Plot summary
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    external_id: Optional[int] = None
    title: Optional[str] = None
    genre: Optional[str] = None
    release_year: Optional[int] = None
    runtime_minutes: Optional[int] = None
    poster_url: Optional[str] = None
    overview: Optional[str] = None


class MetadataPage(BaseModel):
    """One page of mapped provider results."""

    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    results: list[MetadataRecord] = []


# =============================================================================
# Mapping
# =============================================================================


def _first_genre(payload: Mapping[str, Any]) -> str | None:
    genres = payload.get("genres")
    if isinstance(genres, list):
        for genre in genres:
            if isinstance(genre, Mapping):
                name = clean_text(genre.get("name"))
                if name:
                    return name

    genre_ids = payload.get("genre_ids")
    if isinstance(genre_ids, list):
        for genre_id in genre_ids:
            name = TMDB_GENRES.get(coerce_int(genre_id))  # type: ignore[arg-type]
            if name:
                return name

    return None


def _poster_url(poster_path: Any, image_base_url: str) -> str | None:
    path = clean_text(poster_path)
    if path is None:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{image_base_url.rstrip('/')}/{path.lstrip('/')}"


def map_tmdb_movie(
    payload: Mapping[str, Any], image_base_url: str | None = None
) -> MetadataRecord:
    """Build a :class:`MetadataRecord` from a TMDB movie payload.

    Fallbacks:
        - title: ``title``, then ``original_title``, else None
        - genre: first ``genres[].name``, then the first known ``genre_ids``
        - release_year: first four digits of ``release_date``
        - runtime_minutes: ``runtime`` when int-like
        - poster_url: ``poster_path`` prefixed with the image base URL

    Args:
        payload: Raw movie object from details or a result page
        image_base_url: Poster base URL (defaults to settings.tmdb_image_base_url)

    Returns:
        Mapped record; never raises on missing or malformed fields
    """
    base = image_base_url or settings.tmdb_image_base_url

    return MetadataRecord(
        external_id=coerce_int(payload.get("id")),
        title=clean_text(payload.get("title")) or clean_text(payload.get("original_title")),
        genre=_first_genre(payload),
        release_year=parse_release_year(payload.get("release_date")),
        runtime_minutes=coerce_int(payload.get("runtime")),
        poster_url=_poster_url(payload.get("poster_path"), base),
        overview=clean_text(payload.get("overview")),
    )


def map_tmdb_page(
    payload: Mapping[str, Any], image_base_url: str | None = None
) -> MetadataPage:
    """Map a paged TMDB response, skipping non-object entries in ``results``."""
    results = payload.get("results")
    records = [
        map_tmdb_movie(item, image_base_url)
        for item in (results if isinstance(results, list) else [])
        if isinstance(item, Mapping)
    ]
    return MetadataPage(
        page=coerce_int(payload.get("page")) or 1,
        total_pages=coerce_int(payload.get("total_pages")) or 0,
        total_results=coerce_int(payload.get("total_results")) or 0,
        results=records,
    )


def to_movie_request(
    record: MetadataRecord,
    status: MovieStatus = MovieStatus.WISHLIST,
    rating: int | None = None,
    review: str | None = None,
) -> MovieRequest:
    """Convert a provider record into an add request.

    The title is carried over as-is; a record without one yields a request
    that the movie list service rejects.
    """
    return MovieRequest(
        title=record.title,
        genre=record.genre,
        release_year=record.release_year,
        runtime_minutes=record.runtime_minutes,
        poster_url=record.poster_url,
        external_id=record.external_id,
        status=status,
        rating=rating,
        review=review,
    )


__all__ = [
    "TMDB_GENRES",
    "MetadataRecord",
    "MetadataPage",
    "map_tmdb_movie",
    "map_tmdb_page",
    "to_movie_request",
]
