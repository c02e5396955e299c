# app/services/broadcaster.py
"""
Live product-list fan-out.

Observers are connected WebSocket clients (anything with an async
`send_json`). Each observer is bound to the event loop it subscribed from,
so `publish` can be called from any thread, including FastAPI's sync
endpoint threadpool, without blocking on delivery.

Delivery is best-effort: a failed send is logged, the observer is dropped,
and nobody else is affected.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Protocol

logger = logging.getLogger(__name__)

PRODUCTS_UPDATE = "productsUpdate"
PRODUCT_ERROR = "productError"


class CatalogObserver(Protocol):
    async def send_json(self, data: Any) -> None: ...


class CatalogPublisher(Protocol):
    """What catalog mutations need: a fire-and-forget publish step."""

    def publish(self, event: str, data: Any) -> list[Future]: ...


def make_message(event: str, data: Any = None) -> dict[str, Any]:
    return {"event": event, "data": data}


class ProductBroadcaster:
    def __init__(self):
        self._observers: dict[int, tuple[CatalogObserver, asyncio.AbstractEventLoop]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        observer: CatalogObserver,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Register an observer. Must run inside its event loop unless `loop` is given."""
        loop = loop or asyncio.get_running_loop()
        with self._lock:
            self._observers[id(observer)] = (observer, loop)
        logger.info("Observer subscribed (%d connected)", self.observer_count)

    def unsubscribe(self, observer: CatalogObserver) -> None:
        with self._lock:
            removed = self._observers.pop(id(observer), None)
        if removed is not None:
            logger.info("Observer unsubscribed (%d connected)", self.observer_count)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def publish(self, event: str, data: Any) -> list[Future]:
        """
        Schedule `{"event": event, "data": data}` to every observer.

        Returns one future per scheduled delivery; callers normally ignore
        them.
        """
        message = make_message(event, data)
        with self._lock:
            targets = list(self._observers.values())

        futures: list[Future] = []
        for observer, loop in targets:
            if loop.is_closed():
                logger.warning("Dropping observer bound to a closed event loop")
                self.unsubscribe(observer)
                continue
            future = asyncio.run_coroutine_threadsafe(observer.send_json(message), loop)
            future.add_done_callback(self._delivery_callback(observer, event))
            futures.append(future)

        logger.debug("Published %s to %d observer(s)", event, len(futures))
        return futures

    def _delivery_callback(self, observer: CatalogObserver, event: str):
        def _done(future: Future) -> None:
            if future.cancelled():
                self.unsubscribe(observer)
                return
            exc = future.exception()
            if exc is not None:
                logger.warning("Failed to deliver %s to an observer: %s", event, exc)
                self.unsubscribe(observer)

        return _done


# Singleton instance
product_broadcaster = ProductBroadcaster()
