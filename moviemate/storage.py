"""In-memory registry of connected clients."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from moviemate.services.client_context import ClientContext

# Client contexts keyed by bearer token.
clients: Dict[str, "ClientContext"] = {}

# Guards insertions and removals in ``clients``.
clients_lock = threading.Lock()
