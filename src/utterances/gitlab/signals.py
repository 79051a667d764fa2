"""Client signals observed by the widget layer.

The API client never renders anything. When GitLab reports that the
integration is not accessible, the client emits an IntegrationRevoked signal
on its SignalBus and carries on; subscribers decide what to show.

Delivery semantics:
- Subscribers are called in subscription order, synchronously at emit time
- Coroutine results of async subscribers are scheduled as tasks on the
  running loop and are not awaited by the emitter
- A subscriber that raises is logged and does not stop delivery
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

NOT_ACCESSIBLE_MESSAGE = "Resource not accessible by integration"


@dataclass(frozen=True)
class IntegrationRevoked:
    """The tracker rejected a request because the integration is not installed.

    Attributes:
        url: The request URL that was rejected.
        message: The tracker's error message.
    """

    url: str
    message: str = NOT_ACCESSIBLE_MESSAGE


Subscriber = Callable[[IntegrationRevoked], Any]


class SignalBus:
    """Subscribe/notify channel for IntegrationRevoked signals."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, callback: Subscriber, once: bool = False) -> Callable[[], None]:
        """Register a subscriber.

        Args:
            callback: Called with each signal. May be a coroutine function.
            once: Unsubscribe automatically after the first delivery.

        Returns:
            A function that removes the subscription.
        """
        if once:
            wrapped = callback

            def callback(signal: IntegrationRevoked) -> Any:
                unsubscribe()
                return wrapped(signal)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        self._subscribers.append(callback)
        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, signal: IntegrationRevoked) -> None:
        """Deliver a signal to all current subscribers."""
        logger.warning(f"Integration revoked: {signal.message} ({signal.url})")

        for callback in list(self._subscribers):
            try:
                result = callback(signal)
            except Exception:
                logger.exception("IntegrationRevoked subscriber failed")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for scheduled async subscribers to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
