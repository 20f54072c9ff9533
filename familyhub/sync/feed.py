"""Change feeds: what tells a synchronizer to pull.

The synchronizer only depends on `ChangeFeed`; polling is the shipped
implementation and a push channel can take its place.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class ChangeFeed(Protocol):
    async def run(self, on_change: Callable[[], Awaitable[object]]) -> None:
        """Call `on_change` whenever the remote document may have changed. Runs until cancelled."""


class PollingFeed:
    """Fires on a fixed interval."""

    def __init__(self, interval: float, name: str = "poll"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self.ticks = 0

    async def run(self, on_change: Callable[[], Awaitable[object]]) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            try:
                await on_change()
            except Exception as e:
                # A failing tick must not stop the timer
                logger.error("%s tick failed: %s", self.name, e)
