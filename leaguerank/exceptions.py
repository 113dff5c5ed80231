"""Custom exceptions for the ranking engine.

Most of these describe recoverable conditions. The engine catches them at the
point where it can fall back (neutral default values, embedded weight
profiles, skipped backtest weeks) and records a caveat instead of failing the
whole ranking run. Only LeagueNotFoundError (404) and InsufficientSampleError
(422) are expected to reach API callers.

Usage Examples:
- raise MissingUpstreamDataError("valuations", "timed out after 3 attempts")
- raise InsufficientSampleError("need 4 snapshots, got 2")
- raise ConfigLoadError("weights document is missing profiles.inseason")
"""


class RankingEngineError(Exception):
    """Base exception for ranking engine errors."""


class MissingUpstreamDataError(RankingEngineError):
    """Raised when an upstream feed is unavailable after all retries.

    Recoverable: the engine substitutes a neutral default for the feed and
    lowers the data-quality confidence of every affected team.
    """

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        message = f"Upstream source '{source}' unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InsufficientSampleError(RankingEngineError, ValueError):
    """Raised when there is not enough data for a statistically meaningful result.

    Common Scenarios:
    - Backtesting a week with fewer than four stored snapshots
    - Learning parameters with fewer than five backtest results
    """


class ConfigLoadError(RankingEngineError):
    """Raised when the weight configuration document cannot be read or validated.

    Recoverable: the weight resolver falls back to the embedded default
    profiles and logs a warning.
    """


class LeagueNotFoundError(RankingEngineError, LookupError):
    """Raised when the league settings cannot be resolved at all."""
