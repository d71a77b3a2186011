"""
Change broadcast channel.

One producer (the filesystem watcher, bridged onto the event loop) publishes
payload-less change signals; every subscriber gets its own ordered, bounded
view of them starting from the moment it subscribed. A subscriber that falls
more than `capacity` signals behind loses the oldest ones and is told it
lagged, it never blocks the producer.

All methods must be called from the event loop thread that owns the
subscriptions. Code on other threads goes through
``loop.call_soon_threadsafe(broadcaster.publish)``.
"""

import asyncio
import logging
from collections import deque

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 32


class BroadcastError(Exception):
    pass


class Lagged(BroadcastError):
    """Signals were dropped for a slow subscriber. Treat as a received signal."""

    def __init__(self, skipped):
        super().__init__(f"subscription lagged, {skipped} signal(s) skipped")
        self.skipped = skipped


class Closed(BroadcastError):
    pass


class Subscription:
    def __init__(self, broadcaster, capacity):
        self._broadcaster = broadcaster
        self._pending = deque()
        self._capacity = capacity
        self._skipped = 0
        self._wakeup = asyncio.Event()
        self.closed = False

    def _push(self):
        if len(self._pending) >= self._capacity:
            self._pending.popleft()
            self._skipped += 1
        self._pending.append(None)
        self._wakeup.set()

    def _wake(self):
        self._wakeup.set()

    async def recv(self):
        """
        Wait for the next change signal.

        Returns None for a signal. Raises Lagged once after signals were
        dropped, and Closed once nothing more can arrive.
        """
        while True:
            if self._skipped:
                skipped, self._skipped = self._skipped, 0
                raise Lagged(skipped)
            if self._pending:
                return self._pending.popleft()
            if self.closed or self._broadcaster.closed:
                raise Closed("broadcast channel closed")
            self._wakeup.clear()
            await self._wakeup.wait()

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._pending.clear()
        self._broadcaster._unsubscribe(self)
        self._wakeup.set()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            await self.recv()
        except Lagged as e:
            logger.debug("%s", e)
        except Closed:
            raise StopAsyncIteration
        return None


class ChangeBroadcaster:
    def __init__(self, capacity=DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.closed = False
        self._subscriptions = set()

    @property
    def subscriber_count(self):
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.capacity)
        if self.closed:
            sub.closed = True
        else:
            self._subscriptions.add(sub)
        return sub

    def publish(self) -> int:
        """Send a change signal to every subscriber. Returns how many got it."""
        if self.closed:
            return 0
        for sub in self._subscriptions:
            sub._push()
        logger.debug("Change signal sent to %d subscriber(s)", len(self._subscriptions))
        return len(self._subscriptions)

    def close(self):
        if self.closed:
            return
        self.closed = True
        for sub in list(self._subscriptions):
            sub._wake()
        self._subscriptions.clear()

    def _unsubscribe(self, sub):
        self._subscriptions.discard(sub)
