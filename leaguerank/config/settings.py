"""Application settings and configuration management.

This file implements the centralized configuration for the ranking engine using
Pydantic Settings. Every tunable the engine, the backtest evaluator and the
parameter learner read lives here, so a deployment can override any of them
through environment variables or a .env file without touching code.

Configuration Sources (in priority order):
1. Environment variables (highest priority)
2. .env file values
3. Default values defined here (lowest priority)

For beginners:

Pydantic Settings: A library that validates configuration values and loads them
from environment variables, .env files and defaults.
Example: WEIGHT_CONFIG_TTL=60 shortens the weight cache to one minute.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ranking engine settings with environment variable support.

    Example Usage:
    - In code: `settings.database_url`
    - Environment variable: `DATABASE_URL=sqlite:///prod.db`
    - .env file: `database_url=sqlite:///dev.db`
    """

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env file in project root
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow DATABASE_URL or database_url
    )

    # API Configuration - FastAPI web server settings
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Database Configuration - snapshot, backtest and learned-params storage
    database_url: str = "sqlite:///data/database/leaguerank.db"
    database_echo: bool = False  # Log all SQL queries (debugging only)

    # Weight Configuration - versioned composite weight document
    weight_config_source: str = "config/composite_weights.yaml"  # File path or http(s) URL
    weight_config_ttl: int = 600  # Cache time-to-live in seconds (10 minutes)

    # Upstream fetches - every external call is bounded
    fetch_timeout: float = 10.0  # Seconds per attempt
    fetch_retries: int = 2  # Extra attempts after the first failure
    fetch_backoff: float = 0.5  # Base delay for exponential backoff (seconds)

    # Upstream data - optional JSON/YAML fixture used by the in-memory provider
    league_fixture: Path | None = None

    # Scoring
    min_demand_sample: int = 30  # Positions with fewer observed trades use a neutral demand index

    # Backtesting
    backtest_min_teams: int = 4  # Fewer snapshots than this cannot be evaluated
    backtest_horizon_weeks: int = 3  # Look-ahead window for win_pct_3w
    season_end_week: int = 14  # First week counted as end-of-season evidence

    # Parameter learning
    learning_min_results: int = 5  # Backtest results required before learning
    learning_max_results: int = 50  # Most recent results considered
    learning_max_weekly_movement: float = 0.03  # Per-cycle cap (x10 for luck dampening)
    learning_improvement_margin: float = 0.005  # Best must beat baseline by 0.5%

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Path = Path("data/logs/leaguerank.log")

    @property
    def project_root(self) -> Path:
        """Get the project root directory.

        leaguerank/config/settings.py -> leaguerank/config -> leaguerank -> project_root
        """
        return Path(__file__).parent.parent.parent

    @property
    def data_dir(self) -> Path:
        """Directory for databases, logs and fixtures."""
        return self.project_root / "data"


# Global settings instance shared across the application
# Example: from leaguerank.config import settings; print(settings.database_url)
settings = Settings()
