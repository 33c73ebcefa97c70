"""
Prompt Cache - short-lived cache of enriched prompts.

Building an enriched prompt reads conversations, preferences, mistakes and
the knowledge base. Repeating the same question within a few minutes
reuses the previous result instead.

Eviction:
- an entry older than `ttl_seconds` is a miss
- when more than `max_entries` are stored, entries older than
  `prune_age_seconds` are dropped (a growth guard, not an LRU)

The cache is owned by the orchestrator and shared between its concurrent
queries, so every access takes the lock.
"""

import hashlib
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple


class PromptCache:
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        prune_age_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.prune_age_seconds = prune_age_seconds
        self._clock = clock
        self._lock = Lock()
        self._entries: Dict[str, Tuple[str, float]] = {}

    @staticmethod
    def key_for(prompt: str) -> str:
        return hashlib.md5(prompt.encode("utf-8")).hexdigest()

    def get(self, prompt: str) -> Optional[str]:
        key = self.key_for(prompt)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                return None
            return value

    def put(self, prompt: str, enriched: str) -> None:
        key = self.key_for(prompt)
        with self._lock:
            now = self._clock()
            self._entries[key] = (enriched, now)
            if len(self._entries) > self.max_entries:
                self._entries = {
                    k: (v, ts) for k, (v, ts) in self._entries.items()
                    if now - ts < self.prune_age_seconds
                }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
