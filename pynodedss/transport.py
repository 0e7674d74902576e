"""Tick sources driving a signaler's poll clock."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .signaler import NodeDssSignaler

_LOGGER = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.1


async def cancel_task(*tasks: asyncio.Task | None) -> None:
    """Cancel task(s)."""
    for task in tasks:
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


class Transport(ABC):
    """Abstract tick source: calls `advance` on a signaler."""

    @abstractmethod
    async def start(self, signaler: NodeDssSignaler) -> None:
        """Start ticking *signaler*."""

    @abstractmethod
    async def stop(self, signaler: NodeDssSignaler) -> None:
        """Stop ticking *signaler*."""


class TickTransport(Transport):
    """Asyncio loop for hosts without a frame loop of their own.

    Every `tick_interval` seconds it hands the measured elapsed time to
    ``signaler.advance()``. The poll interval itself stays with the signaler,
    so the tick interval only bounds how late a due poll can start.
    """

    def __init__(self, tick_interval: float = DEFAULT_TICK_INTERVAL) -> None:
        """Initialize a tick transport."""
        if tick_interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {tick_interval}")
        self._tick_interval = tick_interval
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        """Return `True` while the tick loop runs."""
        return self._task is not None and not self._task.done()

    async def start(self, signaler: NodeDssSignaler) -> None:
        """Start ticking *signaler*."""
        if self.running:
            return  # already running
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(signaler))

    async def stop(self, signaler: NodeDssSignaler) -> None:
        """Stop ticking *signaler*."""
        self._stop_event.set()
        if self._task:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=5.0)
            except asyncio.TimeoutError:
                await cancel_task(self._task)

    async def _run(self, signaler: NodeDssSignaler) -> None:
        """Run the tick loop."""
        loop = asyncio.get_running_loop()
        last = loop.time()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._tick_interval
                )
            except asyncio.TimeoutError:
                pass  # normal: keep looping
            if self._stop_event.is_set():
                break
            now = loop.time()
            try:
                signaler.advance(now - last)
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception("Tick failed for %s", signaler)
            last = now
