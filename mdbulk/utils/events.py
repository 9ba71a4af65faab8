from typing import Callable, Dict, List
import asyncio
import inspect
import logging
logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Named-event fan-out for download progress.

    Listeners may be plain callables or coroutine functions; both are called
    in subscription order. Emits are serialized so a display never sees two
    events interleaved.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        """Subscribe ``callback``; subscribing twice is a no-op."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    async def emit(self, event_name: str, *args, **kwargs):
        """Call every listener of ``event_name``; a failing listener is logged and skipped."""
        if not self.has_listeners(event_name):
            return

        async with self._lock:
            for callback in list(self._listeners[event_name]):
                try:
                    result = callback(*args, **kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in '{event_name}' listener {getattr(callback, '__name__', callback)!r}: {e}")
