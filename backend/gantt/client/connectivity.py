"""Client-side connectivity state machine.

Tracks two independent facts: whether the device has a network at all and,
when it does, whether the API server answers. Only this monitor derives
connectivity state; UI code reads :attr:`ConnectivityMonitor.status` or
subscribes to changes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gantt.core.config import settings

logger = logging.getLogger(__name__)


class ConnectivityState(str, Enum):
    device_offline = "deviceOffline"
    server_unknown = "deviceOnlineServerUnknown"
    server_up = "deviceOnlineServerUp"
    server_down = "deviceOnlineServerDown"


@dataclass(frozen=True)
class ConnectivityStatus:
    device_online: bool
    server_reachable: bool


Ping = Callable[[], Awaitable[bool]]
Listener = Callable[[ConnectivityStatus], None]


class ConnectivityMonitor:
    """Adaptive reachability polling.

    Polls every ``poll_interval`` seconds while the server is up and every
    ``retry_interval`` seconds otherwise, re-evaluating the interval after
    each ping. A ping that raises or returns a false value means the server
    is down; the cause is not reported.
    """

    def __init__(
        self,
        ping: Ping,
        *,
        poll_interval: Optional[float] = None,
        retry_interval: Optional[float] = None,
        device_online: bool = True,
    ) -> None:
        self._ping = ping
        self.poll_interval = poll_interval or settings.CONNECTIVITY_POLL_SECONDS
        self.retry_interval = retry_interval or settings.CONNECTIVITY_RETRY_SECONDS
        self._state = ConnectivityState.server_unknown if device_online else ConnectivityState.device_offline
        self._listeners: list[Listener] = []
        # Bumped on every device event so pings started before it are ignored.
        self._generation = 0
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def status(self) -> ConnectivityStatus:
        if self._state == ConnectivityState.device_offline:
            return ConnectivityStatus(device_online=False, server_reachable=False)
        # Unknown counts as reachable so the UI shows no error before the first ping.
        return ConnectivityStatus(
            device_online=True,
            server_reachable=self._state != ConnectivityState.server_down,
        )

    @property
    def next_interval(self) -> float:
        if self._state == ConnectivityState.server_up:
            return self.poll_interval
        return self.retry_interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for status changes; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: ConnectivityState) -> None:
        if state == self._state:
            return
        previous = self.status
        self._state = state
        logger.debug("Connectivity state -> %s", state.value)
        current = self.status
        if current == previous:
            return
        for listener in list(self._listeners):
            try:
                listener(current)
            except Exception:
                logger.exception("Connectivity listener failed")

    def device_went_offline(self) -> None:
        self._generation += 1
        self._set_state(ConnectivityState.device_offline)
        self._wakeup.set()

    async def device_came_online(self) -> ConnectivityState:
        """Handle the device regaining a network: ping right away."""
        self._generation += 1
        if self._state == ConnectivityState.device_offline:
            self._set_state(ConnectivityState.server_unknown)
        return await self.check()

    async def check(self) -> ConnectivityState:
        """Ping the server once and apply the result unless it went stale."""
        if self._state == ConnectivityState.device_offline:
            return self._state

        generation = self._generation
        try:
            reachable = bool(await self._ping())
        except Exception:
            logger.debug("Connectivity ping failed", exc_info=True)
            reachable = False

        if generation != self._generation or self._state == ConnectivityState.device_offline:
            logger.debug("Discarding stale connectivity ping result")
            return self._state

        self._set_state(ConnectivityState.server_up if reachable else ConnectivityState.server_down)
        self._wakeup.set()
        return self._state

    async def _sleep_until_next_poll(self) -> None:
        # Any state change restarts the timer with the interval for the new state.
        while True:
            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.next_interval)
            except asyncio.TimeoutError:
                return

    async def _run(self) -> None:
        logger.info("Connectivity monitor started (poll=%ss, retry=%ss)", self.poll_interval, self.retry_interval)
        try:
            while True:
                await self.check()
                await self._sleep_until_next_poll()
        except asyncio.CancelledError:
            logger.info("Connectivity monitor stopped")
            raise

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="connectivity-monitor")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
