from __future__ import annotations

import threading
from datetime import datetime, timedelta

from .domain import is_on_cooldown
from .models import DomainCooldown, Scan


class InMemoryScanStore:
    """Process-local scan history. Ids are assigned on save, starting at 1."""

    def __init__(self):
        self._lock = threading.Lock()
        self._scans: dict[int, Scan] = {}
        self._next_id = 1

    def save(self, scan: Scan) -> Scan:
        with self._lock:
            stored = scan.model_copy(update={"id": self._next_id})
            self._scans[self._next_id] = stored
            self._next_id += 1
            return stored

    def get(self, scan_id: int) -> Scan | None:
        with self._lock:
            return self._scans.get(scan_id)


class InMemoryCooldownStore:
    """Last reward-bearing scan per (user, registrable domain)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], DomainCooldown] = {}

    def get(self, user_id: str, domain: str) -> DomainCooldown | None:
        with self._lock:
            return self._entries.get((user_id, domain))

    def upsert(self, user_id: str, domain: str, at: datetime) -> DomainCooldown:
        entry = DomainCooldown(user_id=user_id, domain=domain, last_scan_at=at)
        with self._lock:
            self._entries[(user_id, domain)] = entry
        return entry

    def check_and_touch(self, user_id: str, domain: str, now: datetime, window: timedelta) -> bool:
        """True when `domain` is still cooling down; otherwise records `now`."""
        existing = self.get(user_id, domain)
        if is_on_cooldown(existing.last_scan_at if existing else None, now, window):
            return True
        self.upsert(user_id, domain, now)
        return False
