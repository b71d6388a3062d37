"""Request sequencing.

Guards shared state against a slow, older response landing after a newer
one. Each fetch takes a ticket for its key before it starts; only the
holder of the newest ticket may apply its result.
"""

from __future__ import annotations

import threading
from collections import defaultdict


class RequestSequencer:
    """Per-key monotonically increasing request tickets."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, int] = defaultdict(int)

    def begin(self, key: str) -> int:
        """Issue a new ticket for ``key``, superseding all earlier ones."""
        with self._lock:
            self._latest[key] += 1
            return self._latest[key]

    def is_current(self, key: str, ticket: int) -> bool:
        """True if ``ticket`` is still the newest one issued for ``key``."""
        with self._lock:
            return self._latest[key] == ticket
