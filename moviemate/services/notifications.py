"""Per-client queue of transient user notifications (toasts)."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

SUCCESS_DURATION_MS = 2000
WELCOME_DURATION_MS = 3000
ERROR_DURATION_MS = 5000


@dataclass(frozen=True)
class Notification:
    kind: str
    message: str
    icon: Optional[str] = None
    duration_ms: int = SUCCESS_DURATION_MS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["durationMs"] = data.pop("duration_ms")
        return data


class Notifier:
    """Collects notifications until the next response drains them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: List[Notification] = []

    def push(self, notification: Notification) -> None:
        with self._lock:
            self._pending.append(notification)

    def success(self, message: str, icon: Optional[str] = None,
                duration_ms: int = SUCCESS_DURATION_MS) -> None:
        self.push(Notification("success", message, icon, duration_ms))

    def error(self, message: str, icon: Optional[str] = None) -> None:
        self.push(Notification("error", message, icon, ERROR_DURATION_MS))

    def info(self, message: str, icon: Optional[str] = None) -> None:
        self.push(Notification("info", message, icon))

    def loading(self, message: str) -> None:
        self.push(Notification("loading", message))

    def drain(self) -> List[Notification]:
        """Return and clear everything queued so far."""
        with self._lock:
            pending, self._pending = self._pending, []
        return pending
