import time


class ResponseCache:
    """TTL cache owned by one editor session.

    Created when the session starts and dropped with it; nothing is shared
    at module level.
    """

    def __init__(self, ttl=120.0, max_entries=64, enabled=True, clock=None):
        self.ttl = ttl
        self.max_entries = max_entries
        self.enabled = enabled
        self._clock = clock or time.time
        self._entries = {}
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, key):
        if not self.enabled:
            return None
        entry = self._entries.get(key)
        if not entry:
            self._stats["misses"] += 1
            return None
        expires_at, value = entry
        if expires_at < self._clock():
            self._entries.pop(key, None)
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return value

    def set(self, key, value, ttl=None):
        if not self.enabled:
            return
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest_key = min(self._entries.items(), key=lambda item: item[1][0])[0]
            self._entries.pop(oldest_key, None)
            self._stats["evictions"] += 1
        ttl = self.ttl if ttl is None else ttl
        self._entries[key] = (self._clock() + ttl, value)

    def invalidate(self, prefix=""):
        for key in [k for k in self._entries if str(k).startswith(prefix)]:
            self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()
        self._stats["hits"] = 0
        self._stats["misses"] = 0
        self._stats["evictions"] = 0

    def stats(self):
        return dict(self._stats)

    def __len__(self):
        return len(self._entries)
