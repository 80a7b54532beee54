"""Network connectivity monitoring."""

import asyncio
import logging
import socket
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ConnectivityMonitor(Protocol):
    """Reports point-in-time online status."""

    def is_online(self) -> bool: ...


class StaticConnectivityMonitor:
    """Connectivity monitor whose state is set explicitly.

    Suitable for tests and for platforms that push connectivity changes
    (the callback simply calls :meth:`set_online`).
    """

    def __init__(self, online: bool = True):
        self._online = online

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        self._online = online


class SocketConnectivityMonitor:
    """Connectivity monitor probing a TCP endpoint in the background.

    :meth:`is_online` only reads the last known status and never touches the
    network. The status is updated by :meth:`refresh`, which runs the
    blocking TCP connect in a worker thread, and by the polling task started
    with :meth:`start`.
    """

    def __init__(
        self,
        host: str = "8.8.8.8",
        port: int = 53,
        timeout: float = 1.0,
        poll_interval: float = 5.0,
        initial_state: bool = True,
    ):
        """Initialize the monitor.

        Args:
            host: Host to probe
            port: TCP port to probe
            timeout: Connect timeout in seconds
            poll_interval: Seconds between background probes
            initial_state: Status reported before the first probe completes
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._online = initial_state
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def _probe(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError as e:
            logger.debug(f"Connectivity probe to {self.host}:{self.port} failed: {e}")
            return False

    def is_online(self) -> bool:
        return self._online

    async def refresh(self) -> bool:
        """Probe the endpoint off the event loop and record the result."""
        result = await asyncio.to_thread(self._probe)
        if result != self._online:
            logger.info(f"Connectivity changed: {'online' if result else 'offline'}")
        self._online = result
        return result

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _poll(self, stop_event: asyncio.Event) -> None:
        logger.debug(f"Connectivity polling started (interval: {self.poll_interval}s)")
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                await self.refresh()
        logger.debug("Connectivity polling stopped")

    async def start(self) -> None:
        """Probe once, then keep probing every ``poll_interval`` seconds."""
        if self.running:
            return
        await self.refresh()
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._poll(self._stop_event))

    async def stop(self) -> None:
        """Stop background polling and wait for the polling task to finish."""
        if self._task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None
