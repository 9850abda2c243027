import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from utils.logger import setup_logger

logger = setup_logger(__name__)


def escape_key_part(part: Any, separators: str = ":") -> str:
    escaped = str(part).replace("\\", "\\\\")
    for separator in separators:
        escaped = escaped.replace(separator, "\\" + separator)
    return escaped


def make_cache_key(namespace: str, *parts: Any) -> str:
    """Join ``parts`` with ":" so that no part can spill into the next one."""
    return ":".join([namespace, *(escape_key_part(part) for part in parts)])


class TTLCache:
    """In-process cache with a fixed time-to-live per entry.

    Keys are plain strings built with ``make_cache_key`` so that
    ``invalidate(prefix)`` can drop a whole family of entries (for example all
    feed entries of one viewer) without touching anyone else's.
    """

    def __init__(self, name: str, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
    
    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            
            return value
    
    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
    
    def invalidate(self, prefix: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        
        if stale:
            logger.debug(
                "Cache entries invalidated",
                extra={"cache": self.name, "prefix": prefix, "count": len(stale)}
            )
        return len(stale)
    
    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
    
    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._entries.keys())
