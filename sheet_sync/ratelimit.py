"""
Rate-limited request queue shared by the external API clients.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)


Operation = Callable[[], Awaitable[Any]]


class RequestQueueStopped(Exception):
    """The queue stopped before the operation got its turn."""
    pass


class RateLimitedQueue:
    """
    FIFO dispatcher that runs queued operations one at a time.

    Every operation is preceded by a fixed pause, including the first one of
    a burst, so two operations never start closer together than ``delay``.
    Only the call that finds the queue idle starts the drain; later calls
    just append and wait for their own result.
    """

    def __init__(self, delay: float, name: str = "queue"):
        """
        Initialize the queue.

        Args:
            delay: Seconds to wait before each operation
            name: Label used in log messages
        """
        self.delay = delay
        self.name = name
        self._pending: Deque[Tuple[Operation, asyncio.Future]] = deque()
        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def depth(self) -> int:
        """Number of operations waiting to run."""
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._draining

    async def enqueue(self, operation: Operation) -> Any:
        """
        Queue an operation and wait for its outcome.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            Whatever the operation returned

        Raises:
            Whatever the operation raised
        """
        future = asyncio.get_running_loop().create_future()
        self._pending.append((operation, future))

        if not self._draining:
            self._draining = True
            self._drain_task = asyncio.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        """Run pending operations until the queue is empty."""
        future: Optional[asyncio.Future] = None
        try:
            while self._pending:
                operation, future = self._pending.popleft()

                await asyncio.sleep(self.delay)

                if future.done():
                    # Caller stopped waiting before its turn
                    logger.debug(f"[{self.name}] Skipping cancelled operation")
                    continue

                try:
                    result = await operation()
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
        except BaseException:
            # Cancellation or interpreter exit: nobody is left to run the rest
            if future is not None and not future.done():
                future.cancel()
            self._reject_pending()
            raise
        finally:
            self._draining = False

    def _reject_pending(self) -> None:
        """Fail every waiting caller; the drain loop is going away."""
        while self._pending:
            _, future = self._pending.popleft()
            if not future.done():
                future.set_exception(
                    RequestQueueStopped(f"{self.name} stopped before this request ran")
                )
