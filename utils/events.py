"""
In-process change signals.

Services publish "this data changed" events after a successful commit;
subscribers (the feed cache, presentation layers) react to them. Handler
failures are logged and never reach the publisher.
"""

import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

from utils.logger import setup_logger

logger = setup_logger(__name__)

FOLLOW_GRAPH_CHANGED = "follow_graph_changed"
INTERACTION_UPDATED = "interaction_updated"
FEED_CACHE_INVALIDATED = "feed_cache_invalidated"

Handler = Callable[..., None]


class EventBus:
    def __init__(self):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()
    
    def subscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            if handler not in self._handlers[event]:
                self._handlers[event].append(handler)
    
    def unsubscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)
    
    def publish(self, event: str, **payload: Any) -> None:
        with self._lock:
            handlers = list(self._handlers[event])
        
        for handler in handlers:
            try:
                handler(**payload)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    extra={"event": event, "handler": getattr(handler, "__name__", repr(handler)), "error": str(e)},
                    exc_info=True
                )


event_bus = EventBus()
