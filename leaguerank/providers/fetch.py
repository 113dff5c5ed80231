"""Bounded upstream fetching with retries and neutral fallbacks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from ..exceptions import MissingUpstreamDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FetchPolicy:
    """Timeout and retry limits applied to every upstream call."""

    timeout: float = 10.0
    retries: int = 2
    backoff: float = 0.5

    @classmethod
    def from_settings(cls, settings) -> "FetchPolicy":
        return cls(
            timeout=settings.fetch_timeout,
            retries=settings.fetch_retries,
            backoff=settings.fetch_backoff,
        )


@dataclass
class FetchOutcome(Generic[T]):
    value: T
    error: MissingUpstreamDataError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_with_retry(
    source: str,
    call: Callable[[], Awaitable[T]],
    policy: FetchPolicy,
) -> T:
    """Await `call()` with a per-attempt timeout and exponential backoff.

    Raises:
        MissingUpstreamDataError: every attempt failed or timed out
    """
    attempts = policy.retries + 1
    last_reason = ""
    for attempt in range(attempts):
        if attempt > 0:
            await asyncio.sleep(policy.backoff * (2 ** (attempt - 1)))
        try:
            return await asyncio.wait_for(call(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            last_reason = f"timed out after {policy.timeout}s"
            logger.warning(f"{source} fetch timeout (attempt {attempt + 1}/{attempts})")
        except MissingUpstreamDataError as e:
            last_reason = e.reason or str(e)
            logger.warning(f"{source} unavailable (attempt {attempt + 1}/{attempts}): {e}")
        except (ConnectionError, OSError, ValueError) as e:
            last_reason = str(e)
            logger.warning(f"{source} fetch error (attempt {attempt + 1}/{attempts}): {e}")
        except Exception as e:
            last_reason = str(e)
            logger.exception(f"Unexpected {source} error (attempt {attempt + 1}/{attempts}): {e}")

    logger.error(f"Failed to fetch {source} after {attempts} attempts")
    raise MissingUpstreamDataError(source, last_reason)


async def fetch_with_fallback(
    source: str,
    call: Callable[[], Awaitable[T]],
    default: T,
    policy: FetchPolicy,
) -> FetchOutcome[T]:
    """Like fetch_with_retry, but exhaustion yields `default` plus the error."""
    try:
        return FetchOutcome(await fetch_with_retry(source, call, policy))
    except MissingUpstreamDataError as e:
        return FetchOutcome(default, e)
