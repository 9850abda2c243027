from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List

from .notification import NotificationIntent


@dataclass
class Outcome:
    """Result of an engine operation plus the notifications it wants delivered.

    ``created`` is False when the call converged on state that already
    existed (an idempotent repeat).
    """
    value: Any = None
    created: bool = False
    notifications: List[NotificationIntent] = field(default_factory=list)

    def merge(self, other: "Outcome") -> "Outcome":
        self.notifications.extend(other.notifications)
        return self
