"""
Per-host concurrency cap for outbound supplier calls.

Each supplier host gets its own semaphore, so a burst of probes against one
slow supplier can't pile up unbounded sockets while other suppliers are
unaffected. A host's semaphore only lives while someone holds or waits for
one of its slots.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from app.core.config import settings
from app.core.exceptions import ConcurrencyLimitError

logger = logging.getLogger(__name__)


class HostConcurrencyLimiter:
    """
    Limits in-flight requests per host.

    Usage:
        limiter = HostConcurrencyLimiter(max_per_host=4, acquire_timeout=10)

        async with limiter.slot("api.supplier.com", timeout=remaining):
            await do_request()

    A caller that can't get a slot within ``timeout`` seconds (default
    ``acquire_timeout``) gets a ConcurrencyLimitError. ``max_per_host=0``
    turns the limiter off.
    """

    def __init__(self, max_per_host: int, acquire_timeout: float):
        self.max_per_host = max_per_host
        self.acquire_timeout = acquire_timeout
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._in_flight: Dict[str, int] = {}
        # Holders plus waiters per host
        self._users: Dict[str, int] = {}

    @property
    def enabled(self) -> bool:
        return self.max_per_host > 0

    @property
    def tracked_hosts(self) -> int:
        """Number of hosts that currently have a semaphore."""
        return len(self._semaphores)

    def in_flight(self, host: str) -> int:
        """Number of requests currently holding a slot for ``host``."""
        return self._in_flight.get(host.lower(), 0)

    def _checkout(self, host: str) -> asyncio.Semaphore:
        if host not in self._semaphores:
            self._semaphores[host] = asyncio.Semaphore(self.max_per_host)
        self._users[host] = self._users.get(host, 0) + 1
        return self._semaphores[host]

    def _checkin(self, host: str) -> None:
        self._users[host] -= 1
        if not self._users[host]:
            del self._users[host]
            del self._semaphores[host]

    @asynccontextmanager
    async def slot(self, host: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        if not self.enabled:
            yield
            return

        host = host.lower()
        wait = self.acquire_timeout if timeout is None else max(timeout, 0)
        semaphore = self._checkout(host)
        try:
            try:
                await asyncio.wait_for(semaphore.acquire(), timeout=wait)
            except asyncio.TimeoutError:
                logger.warning(f"Concurrency limit reached for {host} ({self.max_per_host} in flight)")
                raise ConcurrencyLimitError(host=host, limit=self.max_per_host)

            self._in_flight[host] = self._in_flight.get(host, 0) + 1
            try:
                yield
            finally:
                self._in_flight[host] -= 1
                if not self._in_flight[host]:
                    del self._in_flight[host]
                semaphore.release()
        finally:
            self._checkin(host)


host_limiter = HostConcurrencyLimiter(
    max_per_host=settings.supplier_max_concurrent_per_host,
    acquire_timeout=settings.supplier_request_timeout_seconds,
)
