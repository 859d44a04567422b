"""Async TMDB API client.

This module provides an async HTTP/2 client for The Movie Database (TMDB)
with:
- Connection pooling and HTTP/2 multiplexing
- Retry logic with exponential backoff on timeouts, 429 and 5xx
- Semaphore-bounded concurrency
- Translation of provider failures into the WatchlistDB error taxonomy
- Prometheus request counters and latency histograms

The client only fetches. Adopting a movie is fetch (here, lock-free) then
construct (``MovieListService.adopt_movie``, one transaction).

Example:
    >>> from watchlistdb.api import AsyncTmdbClient
    >>>
    >>> async with AsyncTmdbClient() as client:
    ...     records = await client.search_movies_formatted("Inception")
    ...     print(f"Found {len(records)} movies")
"""

import asyncio
import logging
import time
from typing import Any, cast

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from watchlistdb.config import settings
from watchlistdb.errors import MetadataProviderError, NotFoundError
from watchlistdb.logging import logger
from watchlistdb.metadata import MetadataRecord, map_tmdb_movie, map_tmdb_page
from watchlistdb.metrics import (
    errors_total,
    tmdb_request_duration_seconds,
    tmdb_requests_total,
)
from watchlistdb.types import TmdbMovieData, TmdbMoviePage

# =============================================================================
# Custom Exceptions
# =============================================================================


class TransientTmdbError(Exception):
    """Retryable network/HTTP layer failures.

    Raised for errors that should trigger retry logic:
    - Network timeouts
    - Connection errors
    - HTTP 429 (rate limit)
    - HTTP 5xx (server errors)
    """


# =============================================================================
# Async TMDB Client
# =============================================================================


class AsyncTmdbClient:
    """Async HTTP/2 client for the TMDB v3 API.

    Args:
        api_key: TMDB API key (defaults to settings.tmdb_api_key)
        base_url: API root (defaults to settings.tmdb_base_url)
        image_base_url: Poster base URL used when mapping records
        max_concurrency: Maximum concurrent requests
        pool_limits: Custom httpx connection pool limits
        timeout: Custom httpx timeout configuration
        retry_attempts: Attempts per request, including the first
        retry_wait: tenacity wait strategy between attempts

    Example:
        >>> async with AsyncTmdbClient(api_key="...") as client:
        ...     details = await client.get_movie_details(27205)
        ...     print(details["title"])
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        image_base_url: str | None = None,
        max_concurrency: int | None = None,
        pool_limits: httpx.Limits | None = None,
        timeout: httpx.Timeout | None = None,
        retry_attempts: int | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._api_key = api_key or settings.tmdb_api_key
        self._base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self._image_base_url = image_base_url or settings.tmdb_image_base_url
        self._max_concurrency = max_concurrency or settings.max_concurrency
        self._sem = asyncio.Semaphore(self._max_concurrency)
        self._retry_attempts = retry_attempts or settings.retry_attempts
        self._retry_wait = retry_wait or (
            wait_exponential(multiplier=1, min=1, max=30) + wait_random(0, 1)
        )

        self._limits = pool_limits or httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
            keepalive_expiry=30.0,
        )

        self._timeout = timeout or httpx.Timeout(
            timeout=settings.request_timeout_seconds,
            connect=10.0,
        )

        # Created on first use
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                limits=self._limits,
                timeout=self._timeout,
                http2=True,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def __aenter__(self) -> "AsyncTmdbClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close all connections and cleanup resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _do_http_get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """Perform raw HTTP GET with error classification.

        Args:
            path: Path below the API root, e.g. ``/movie/550``
            params: Query parameters (the API key is added here)

        Returns:
            Parsed JSON body

        Raises:
            TransientTmdbError: For retryable failures
            NotFoundError: For HTTP 404
            MetadataProviderError: For any other non-success response
        """
        client = await self._ensure_client()

        try:
            resp = await client.get(path, params={**params, "api_key": self._api_key})
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            raise TransientTmdbError(f"Network/timeout error: {exc}") from exc

        if resp.status_code == 429 or 500 <= resp.status_code < 600:
            raise TransientTmdbError(f"HTTP {resp.status_code}")

        if resp.status_code == 404:
            raise NotFoundError("TMDB resource", "path", path)

        if resp.status_code != 200:
            logger.error(f"Non-retryable TMDB HTTP {resp.status_code} for {path}: {resp.text[:200]}")
            raise MetadataProviderError(f"TMDB returned HTTP {resp.status_code} for {path}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise TransientTmdbError(f"Invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise MetadataProviderError(f"Unexpected TMDB payload for {path}")

        return body

    async def _get_with_retry(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET with semaphore and retry logic."""
        # Create logging bridge for tenacity
        logging_logger = logging.getLogger(__name__)

        @retry(
            reraise=True,
            stop=stop_after_attempt(self._retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(TransientTmdbError),
            before_sleep=before_sleep_log(logging_logger, logging.WARNING),
        )
        async def _runner() -> dict[str, Any]:
            async with self._sem:
                return await self._do_http_get(path, params)

        return await _runner()

    async def _request(
        self, endpoint: str, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run one provider call with metrics and error translation.

        Args:
            endpoint: Metric label, e.g. ``"search"`` or ``"details"``
            path: Path below the API root
            params: Query parameters

        Raises:
            NotFoundError: The provider has no such resource
            MetadataProviderError: Missing credentials, rejected request or
                retries exhausted
        """
        if not self._api_key:
            raise MetadataProviderError("TMDB API key is not configured (set TMDB_API_KEY)")

        start_time = time.perf_counter()
        status = "success"
        try:
            return await self._get_with_retry(path, params or {})
        except NotFoundError:
            status = "not_found"
            raise
        except TransientTmdbError as exc:
            status = "error"
            errors_total.labels(error_type=type(exc).__name__, component="tmdb").inc()
            logger.error(f"❌ TMDB {endpoint} failed after {self._retry_attempts} attempts: {exc}")
            raise MetadataProviderError(f"TMDB {endpoint} unavailable: {exc}") from exc
        except MetadataProviderError as exc:
            status = "error"
            errors_total.labels(error_type=type(exc).__name__, component="tmdb").inc()
            raise
        finally:
            tmdb_requests_total.labels(endpoint=endpoint, status=status).inc()
            tmdb_request_duration_seconds.labels(endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )

    # ========== Raw endpoints ==========

    async def search_movies(self, query: str, page: int = 1) -> TmdbMoviePage:
        """Search movies by title.

        Args:
            query: Free-text title query
            page: 1-based result page

        Returns:
            Raw TMDB result page (``page``, ``results``, ``total_pages``, ...)
        """
        logger.debug(f"🔎 TMDB search '{query}' (page {page})")
        body = await self._request("search", "/search/movie", {"query": query, "page": page})
        return cast(TmdbMoviePage, body)

    async def get_movie_details(self, tmdb_id: int) -> TmdbMovieData:
        """Fetch full details for one movie.

        Raises:
            NotFoundError: If TMDB has no movie with this id
        """
        try:
            body = await self._request("details", f"/movie/{tmdb_id}")
        except NotFoundError as exc:
            raise NotFoundError("Movie", "tmdb_id", tmdb_id) from exc
        return cast(TmdbMovieData, body)

    async def get_popular_movies(self, page: int = 1) -> TmdbMoviePage:
        body = await self._request("popular", "/movie/popular", {"page": page})
        return cast(TmdbMoviePage, body)

    async def get_top_rated_movies(self, page: int = 1) -> TmdbMoviePage:
        body = await self._request("top_rated", "/movie/top_rated", {"page": page})
        return cast(TmdbMoviePage, body)

    async def get_upcoming_movies(self, page: int = 1) -> TmdbMoviePage:
        body = await self._request("upcoming", "/movie/upcoming", {"page": page})
        return cast(TmdbMoviePage, body)

    async def get_movie_recommendations(self, tmdb_id: int, page: int = 1) -> TmdbMoviePage:
        """TMDB's own recommendations for a movie, passed through unchanged."""
        try:
            body = await self._request(
                "recommendations", f"/movie/{tmdb_id}/recommendations", {"page": page}
            )
            return cast(TmdbMoviePage, body)
        except NotFoundError as exc:
            raise NotFoundError("Movie", "tmdb_id", tmdb_id) from exc

    # ========== Mapped endpoints ==========

    async def search_movies_formatted(self, query: str, page: int = 1) -> list[MetadataRecord]:
        """Search and map every result into a :class:`MetadataRecord`.

        Example:
            >>> records = await client.search_movies_formatted("Inception")
            >>> records[0].title, records[0].release_year
            ('Inception', 2010)
        """
        payload = await self.search_movies(query, page)
        return map_tmdb_page(payload, self._image_base_url).results

    async def fetch_metadata(self, tmdb_id: int) -> MetadataRecord:
        """Fetch one movie's details as a typed partial record."""
        payload = await self.get_movie_details(tmdb_id)
        return map_tmdb_movie(payload, self._image_base_url)


# =============================================================================
# Export Public API
# =============================================================================

__all__ = [
    "AsyncTmdbClient",
    "TransientTmdbError",
]
