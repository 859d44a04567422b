"""Configuration management for WatchlistDB.

This module provides centralized configuration using Pydantic Settings,
loaded from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, single concurrency, safe defaults
    - PRODUCTION: JSON logs, conservative concurrency
    - TESTING: In-memory database, minimal logging, fast execution

Example:
    >>> from watchlistdb.config import settings
    >>> print(settings.tmdb_base_url)
    https://api.themoviedb.org/3
    >>> print(settings.leaderboard_weights.watched)
    3
"""

from enum import StrEnum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles.

    Attributes:
        DEVELOPMENT: Verbose logging, single concurrency, safe defaults
        PRODUCTION: JSON logging, conservative settings
        TESTING: In-memory database, minimal logging, fast execution
        STAGING: Pre-production validation environment
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class LeaderboardWeights(BaseModel):
    """Score weights for the leaderboard.

    A user's own activity (watching, being liked) must weigh at least as much
    as raw popularity, so ``watched >= likes >= followers >= 0``.

    Attributes:
        watched: Points per watched movie (W1)
        likes: Points per like received across the user's movies (W2)
        followers: Points per follower (W3)
    """

    watched: int = 3
    likes: int = 1
    followers: int = 1

    @model_validator(mode="after")
    def check_ordering(self) -> "LeaderboardWeights":
        """Reject negative weights and weights that break W1 >= W2 >= W3."""
        if self.followers < 0:
            raise ValueError("Leaderboard weights must be non-negative")
        if not (self.watched >= self.likes >= self.followers):
            raise ValueError(
                "Leaderboard weights must satisfy watched >= likes >= followers"
            )
        return self


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Runtime profile
        tmdb_api_key: TMDB v3 API key (only needed for metadata lookups)
        tmdb_base_url: TMDB REST API base URL
        tmdb_image_base_url: Prefix prepended to TMDB poster paths
        data_dir: Base directory for the database and log files
        database_path: Path to SQLite database file
        max_concurrency: Maximum concurrent TMDB requests
        request_timeout_seconds: Overall timeout for one TMDB request
        retry_attempts: Attempts before a transient TMDB failure is raised
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment Configuration
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Runtime environment (development, production, testing, staging)",
    )

    # Metadata Provider Configuration
    tmdb_api_key: Optional[str] = Field(
        None,
        alias="TMDB_API_KEY",
        description="TMDB API key for search and movie details",
    )
    tmdb_base_url: str = Field(
        "https://api.themoviedb.org/3",
        description="TMDB REST API base URL",
    )
    tmdb_image_base_url: str = Field(
        "https://image.tmdb.org/t/p/w500",
        description="Base URL prepended to TMDB poster paths",
    )

    # Data Directory Configuration
    data_dir: Path = Field(
        Path("./data"),
        description="Base directory for all data files (database, logs)",
    )

    # Database Configuration
    database_path: Path = Field(
        Path("watchlist.db"),  # Replaced with data_dir/watchlist.db by validator
        description="Path to SQLite database file (defaults to data_dir/watchlist.db)",
    )

    # Operational Parameters
    max_concurrency: int = Field(
        3,
        ge=1,
        le=10,
        description="Maximum concurrent metadata provider requests",
    )
    request_timeout_seconds: float = Field(
        20.0,
        gt=0,
        le=120,
        description="Overall timeout for one metadata provider request",
    )
    retry_attempts: int = Field(
        5,
        ge=1,
        le=20,
        description="Attempts before a transient provider failure is raised",
    )

    # Leaderboard Configuration
    leaderboard_watched_weight: int = Field(3, ge=0, description="W1: points per watched movie")
    leaderboard_likes_weight: int = Field(1, ge=0, description="W2: points per like received")
    leaderboard_followers_weight: int = Field(1, ge=0, description="W3: points per follower")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=False,
        description="Enable file logging in addition to console",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (recommended for production)",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand and resolve data directory path."""
        path = Path(v).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @model_validator(mode="after")
    def set_database_path_default(self) -> "Settings":
        """Set database_path to data_dir/watchlist.db if not explicitly provided."""
        if self.database_path == Path("watchlist.db"):
            self.database_path = self.data_dir / "watchlist.db"
        if str(self.database_path) != ":memory:":
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        return self

    @model_validator(mode="after")
    def validate_leaderboard_weights(self) -> "Settings":
        """Fail fast on weights that would break the ranking contract."""
        LeaderboardWeights(
            watched=self.leaderboard_watched_weight,
            likes=self.leaderboard_likes_weight,
            followers=self.leaderboard_followers_weight,
        )
        return self

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific defaults.

        Profiles:
            - PRODUCTION: Max 5 concurrent requests, INFO logging, JSON logs
            - DEVELOPMENT: Single concurrency, DEBUG logging
            - TESTING: In-memory database, ERROR logging, no file logging
            - STAGING: Balanced settings between development and production

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            self.max_concurrency = min(self.max_concurrency, 5)
            if self.log_level == "DEBUG":
                self.log_level = "INFO"
            self.log_json = True

        elif self.environment == Environment.DEVELOPMENT:
            self.max_concurrency = 1
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.database_path = Path(":memory:")
            self.max_concurrency = 1
            self.log_level = "ERROR"
            self.log_to_file = False
            self.log_json = False

        elif self.environment == Environment.STAGING:
            self.max_concurrency = min(self.max_concurrency, 3)
            self.log_level = "INFO"
            self.log_json = True

        return self

    @property
    def leaderboard_weights(self) -> LeaderboardWeights:
        """Get the configured leaderboard weights as one immutable snapshot."""
        return LeaderboardWeights(
            watched=self.leaderboard_watched_weight,
            likes=self.leaderboard_likes_weight,
            followers=self.leaderboard_followers_weight,
        )

    @property
    def database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        if str(self.database_path) == ":memory:":
            return "sqlite://"
        return f"sqlite:///{self.database_path}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @property
    def has_tmdb_credentials(self) -> bool:
        """Check if a TMDB API key is configured."""
        return bool(self.tmdb_api_key)

    def redact_token(self, token: Optional[str] = None) -> str:
        """Redact sensitive token for logging.

        Args:
            token: Token to redact (defaults to tmdb_api_key)

        Returns:
            Redacted token string
        """
        token = token or self.tmdb_api_key
        if not token:
            return "None"
        return f"{token[:8]}...{token[-4:]}" if len(token) > 12 else "***"


def get_settings() -> Settings:
    """Get a fresh settings instance from the current environment.

    Returns:
        Configured Settings instance
    """
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
