"""Poll scheduling for relay fetches."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .enums import FetchStatus, RetryAction
from .exceptions import SignalerConfigException
from .session import FetchResult

_LOGGER = logging.getLogger(__name__)

BACKOFF_SECONDS_MAX = 300.0


@dataclass(frozen=True)
class RetryDecision:
    """Decision returned by a retry policy after a failed fetch."""

    action: RetryAction
    delay: float | None = None

    @classmethod
    def retry(cls) -> RetryDecision:
        """Poll again on the regular interval."""
        return cls(RetryAction.RETRY)

    @classmethod
    def retry_after(cls, delay: float) -> RetryDecision:
        """Poll again once `delay` seconds have accumulated."""
        if delay <= 0:
            raise ValueError(f"Retry delay must be positive, got {delay}")
        return cls(RetryAction.RETRY_AFTER, delay)

    @classmethod
    def give_up(cls) -> RetryDecision:
        """Stop polling."""
        return cls(RetryAction.GIVE_UP)


class RetryPolicy(ABC):
    """Decides how polling continues after consecutive failed fetches."""

    @abstractmethod
    def on_failure(self, failures: int, error: Exception | None) -> RetryDecision:
        """Return the decision after `failures` consecutive failed fetches."""


class AlwaysRetry(RetryPolicy):
    """Keep polling on the regular interval no matter how often it fails."""

    def on_failure(self, failures: int, error: Exception | None) -> RetryDecision:
        """Return the decision after `failures` consecutive failed fetches."""
        return RetryDecision.retry()


class ExponentialBackoff(RetryPolicy):
    """Double the wait after each consecutive failure, up to a maximum."""

    def __init__(
        self,
        base: float = 1.0,
        maximum: float = BACKOFF_SECONDS_MAX,
        max_attempts: int | None = None,
    ) -> None:
        """Initialize the policy."""
        if base <= 0 or maximum < base:
            raise ValueError(f"Invalid backoff range {base}..{maximum}")
        self._base = base
        self._maximum = maximum
        self._max_attempts = max_attempts

    def on_failure(self, failures: int, error: Exception | None) -> RetryDecision:
        """Return the decision after `failures` consecutive failed fetches."""
        if self._max_attempts is not None and failures >= self._max_attempts:
            return RetryDecision.give_up()
        return RetryDecision.retry_after(
            min(self._base * 2 ** (failures - 1), self._maximum)
        )


class PollScheduler:
    """Issue relay fetches from an externally driven tick.

    The host calls :meth:`tick` with the time elapsed since its previous call.
    Once the accumulated time reaches the poll interval, a fetch is started
    unless the previous one has not finished yet. The in-flight flag is only
    cleared when the fetch task completes, so at most one fetch is outstanding.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[FetchResult | None]],
        interval: float,
        retry_policy: RetryPolicy | None = None,
        on_give_up: Callable[[], Any] | None = None,
    ) -> None:
        """Initialize the scheduler."""
        if interval <= 0:
            raise SignalerConfigException(
                f"Poll interval must be positive, got {interval}"
            )
        self._fetch = fetch
        self._interval = interval
        self._retry_policy = retry_policy or AlwaysRetry()
        self._on_give_up = on_give_up

        self._elapsed = 0.0
        self._due = interval
        self._in_flight = False
        self._task: asyncio.Task | None = None
        self._failures = 0
        self._closed = False

    @property
    def interval(self) -> float:
        """Return the regular poll interval in seconds."""
        return self._interval

    @property
    def elapsed(self) -> float:
        """Return the time accumulated since the last poll."""
        return self._elapsed

    @property
    def in_flight(self) -> bool:
        """Return `True` while a fetch is outstanding."""
        return self._in_flight

    @property
    def consecutive_failures(self) -> int:
        """Return the number of failed fetches since the last success."""
        return self._failures

    @property
    def closed(self) -> bool:
        """Return `True` once the scheduler stopped accepting ticks."""
        return self._closed

    def tick(self, elapsed: float) -> asyncio.Task | None:
        """Advance the poll clock and start a fetch when one is due."""
        if self._closed:
            return None
        if elapsed < 0:
            raise ValueError(f"Elapsed time must not be negative, got {elapsed}")

        self._elapsed += elapsed
        if self._elapsed < self._due:
            return None
        self._elapsed = 0.0

        if self._in_flight:
            _LOGGER.debug("Previous fetch still pending; skipping poll")
            return None
        return self._start_fetch()

    def close(self) -> None:
        """Stop polling; completions of a pending fetch are ignored."""
        self._closed = True
        self._task = None

    def _start_fetch(self) -> asyncio.Task:
        """Start a fetch task and guard it."""
        loop = asyncio.get_running_loop()
        self._in_flight = True
        task = loop.create_task(self._fetch())
        self._task = task
        task.add_done_callback(self._fetch_done)
        return task

    def _fetch_done(self, task: asyncio.Task) -> None:
        """Handle the terminal outcome of a fetch."""
        self._in_flight = False
        self._task = None

        if self._closed:
            if not task.cancelled():
                task.exception()
            return

        if task.cancelled():
            _LOGGER.debug("Fetch was cancelled")
            return

        if (error := task.exception()) is not None:
            _LOGGER.error("Fetch raised unexpectedly", exc_info=error)
            self._failed(error if isinstance(error, Exception) else None)
            return

        result = task.result()
        if isinstance(result, FetchResult) and result.status is FetchStatus.ERROR:
            self._failed(result.error)
        else:
            self._failures = 0
            self._due = self._interval

    def _failed(self, error: Exception | None) -> None:
        """Consult the retry policy after a failed fetch."""
        self._failures += 1
        decision = self._retry_policy.on_failure(self._failures, error)
        if decision.action is RetryAction.RETRY_AFTER and decision.delay:
            _LOGGER.debug(
                "Fetch failed %s time(s); next poll in %.1fs",
                self._failures,
                decision.delay,
            )
            self._due = decision.delay
        elif decision.action is RetryAction.GIVE_UP:
            _LOGGER.warning("Giving up polling after %s failed fetches", self._failures)
            self.close()
            if self._on_give_up:
                self._on_give_up()
        else:
            self._due = self._interval
