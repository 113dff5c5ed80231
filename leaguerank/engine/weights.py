"""Weight profiles and the weight resolver.

The composite is a weighted sum of sub-scores. Which weights apply depends on
the season phase and the league format, and the weights themselves live in a
versioned document (YAML/JSON file or HTTP endpoint) so they can be
recalibrated without a deploy.

Resolution order:
1. Cached document (TTL, default 10 minutes)
2. Freshly loaded and validated document
3. Embedded defaults, when loading or validation fails

Learned parameters then adjust the chosen profile (see apply_learned_params).
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..cache import TTLCache
from ..exceptions import ConfigLoadError
from .params import LearnedParams
from .phase import LeagueFormat, Phase

logger = logging.getLogger(__name__)

EMBEDDED_VERSION = "embedded-default"
BASE_FUTURE_CAPITAL_INFLUENCE = 0.05
BASE_LUCK_DAMPENING = 2.0


class WeightProfile(BaseModel):
    """Non-negative weights for the seven sub-scores."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    win: float = Field(default=0.0, ge=0)
    power: float = Field(default=0.0, ge=0)
    luck: float = Field(default=0.0, ge=0)
    market: float = Field(default=0.0, ge=0)
    skill: float = Field(default=0.0, ge=0)
    draft_gain: float = Field(default=0.0, ge=0)
    future_capital: float = Field(default=0.0, ge=0)

    @property
    def total(self) -> float:
        return sum(self.model_dump().values())


class WeightConfig(BaseModel):
    """Versioned set of profiles keyed by phase, then league format."""

    version: str
    calibrated_at: datetime | None = None
    profiles: dict[Phase, dict[LeagueFormat, WeightProfile]]

    @model_validator(mode="after")
    def _require_all_profiles(self) -> "WeightConfig":
        missing = [
            f"{phase.value}.{fmt.value}"
            for phase in Phase
            for fmt in LeagueFormat
            if fmt not in self.profiles.get(phase, {})
        ]
        if missing:
            raise ValueError(f"missing weight profiles: {', '.join(missing)}")
        return self

    def profile(self, phase: Phase, is_dynasty: bool) -> WeightProfile:
        return self.profiles[phase][LeagueFormat.of(is_dynasty)]


DEFAULT_WEIGHT_CONFIG = WeightConfig(
    version=EMBEDDED_VERSION,
    profiles={
        Phase.IN_SEASON: {
            LeagueFormat.DYNASTY: WeightProfile(
                win=0.20, power=0.30, luck=0.08, market=0.17, skill=0.15, future_capital=0.10
            ),
            LeagueFormat.REDRAFT: WeightProfile(win=0.30, power=0.45, luck=0.15, skill=0.10),
        },
        Phase.OFFSEASON: {
            LeagueFormat.DYNASTY: WeightProfile(
                power=0.25, luck=0.10, market=0.45, skill=0.10, future_capital=0.10
            ),
            LeagueFormat.REDRAFT: WeightProfile(win=0.10, power=0.50, market=0.20, skill=0.20),
        },
        Phase.POST_DRAFT: {
            LeagueFormat.DYNASTY: WeightProfile(
                power=0.25, market=0.35, skill=0.15, draft_gain=0.15, future_capital=0.10
            ),
            LeagueFormat.REDRAFT: WeightProfile(
                power=0.55, market=0.10, skill=0.15, draft_gain=0.20
            ),
        },
        Phase.POST_SEASON: {
            LeagueFormat.DYNASTY: WeightProfile(
                win=0.50, power=0.20, market=0.10, skill=0.10, future_capital=0.10
            ),
            LeagueFormat.REDRAFT: WeightProfile(win=0.55, power=0.20, market=0.15, skill=0.10),
        },
    },
)


# ========== CONFIG SOURCES ==========


class WeightConfigSource(Protocol):
    def load(self) -> dict[str, Any]: ...


class FileWeightConfigSource:
    """Weight document stored as a YAML or JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                if self.path.suffix == ".json":
                    return json.load(f)
                return yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigLoadError(f"weight config not found at {self.path}") from e
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigLoadError(f"unreadable weight config {self.path}: {e}") from e


class HttpWeightConfigSource:
    """Weight document served over HTTP(S) as JSON or YAML."""

    def __init__(self, url: str, timeout: float = 10.0, max_retries: int = 3, backoff: float = 0.5):
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff

    def load(self) -> dict[str, Any]:
        with httpx.Client(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                if attempt > 0:
                    time.sleep(self.backoff * (2**attempt))
                try:
                    response = client.get(self.url)
                    if response.status_code == 200:
                        return yaml.safe_load(response.text)
                    if response.status_code == 404:
                        break  # Don't retry a missing document
                    logger.warning(f"Weight config returned status {response.status_code}")
                except httpx.TimeoutException:
                    logger.warning(f"Weight config request timeout (attempt {attempt + 1})")
                except httpx.HTTPError as e:
                    logger.warning(f"Weight config network error (attempt {attempt + 1}): {e}")
                except yaml.YAMLError as e:
                    raise ConfigLoadError(f"unparseable weight config from {self.url}: {e}") from e

        raise ConfigLoadError(f"failed to load weight config from {self.url}")


def source_from_setting(location: str, timeout: float = 10.0, max_retries: int = 3):
    if location.startswith(("http://", "https://")):
        return HttpWeightConfigSource(location, timeout=timeout, max_retries=max_retries)
    return FileWeightConfigSource(location)


# ========== RESOLUTION ==========


def apply_learned_params(profile: WeightProfile, params: LearnedParams) -> WeightProfile:
    """Adjust a profile with learned parameters.

    Luck weight scales inversely with luck dampening (2.0 is neutral). Future
    capital moves by its influence relative to the 0.05 baseline, and the
    other non-luck weights are rescaled to absorb that change.
    """
    luck = profile.luck * (BASE_LUCK_DAMPENING / max(1.0, params.luck_dampening))
    fc_delta = params.future_capital_influence - BASE_FUTURE_CAPITAL_INFLUENCE

    future_capital = max(0.0, profile.future_capital + fc_delta)
    applied = future_capital - profile.future_capital

    others = ("win", "power", "market", "skill", "draft_gain")
    total_other = sum(getattr(profile, name) for name in others)
    rebalance = (total_other - applied) / total_other if total_other > 0 else 1.0

    adjusted = {name: max(0.0, getattr(profile, name) * rebalance) for name in others}
    adjusted["luck"] = max(0.0, luck)
    adjusted["future_capital"] = future_capital
    return WeightProfile(**adjusted)


class WeightResolver:
    """Resolves the weight profile for a phase and format.

    Args:
        source: Where the weight document lives
        ttl: Cache lifetime in seconds
        clock: Monotonic clock, injectable for tests
    """

    CACHE_KEY = "weight-config"

    def __init__(
        self,
        source: WeightConfigSource | None = None,
        ttl: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.cache = TTLCache(ttl=ttl, clock=clock)

    @classmethod
    def from_settings(cls, settings) -> "WeightResolver":
        source = source_from_setting(
            settings.weight_config_source,
            timeout=settings.fetch_timeout,
            max_retries=settings.fetch_retries + 1,
        )
        return cls(source=source, ttl=settings.weight_config_ttl)

    def _load(self) -> WeightConfig:
        if self.source is None:
            return DEFAULT_WEIGHT_CONFIG
        try:
            config = WeightConfig.model_validate(self.source.load())
        except (ConfigLoadError, ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Falling back to embedded weight profiles: {e}")
            return DEFAULT_WEIGHT_CONFIG
        logger.info(f"Loaded weight config version {config.version}")
        return config

    def config(self) -> WeightConfig:
        return self.cache.get_or_load(self.CACHE_KEY, self._load)

    async def aconfig(self) -> WeightConfig:
        """Like config(), but a cache miss loads the document in a worker thread."""
        return await asyncio.to_thread(self.config)

    def refresh(self) -> WeightConfig:
        self.cache.invalidate(self.CACHE_KEY)
        return self.config()

    def resolve(
        self,
        phase: Phase,
        is_dynasty: bool,
        learned_params: LearnedParams | None = None,
        config: WeightConfig | None = None,
    ) -> WeightProfile:
        profile = (config or self.config()).profile(phase, is_dynasty)
        if learned_params is not None:
            profile = apply_learned_params(profile, learned_params)
        return profile
