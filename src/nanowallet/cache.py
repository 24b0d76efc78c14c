import time
from collections import OrderedDict
from collections.abc import Callable

import nanowallet.constants as C


class ProcessedHashCache:
    """Transaction hashes seen on the feed, kept for ``ttl`` seconds.

    Entries are held in insertion order so expiry only walks the stale prefix.
    """

    def __init__(self, ttl: float = C.PROCESSED_HASH_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()

    def __contains__(self, tx_hash: str) -> bool:
        return tx_hash in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def purge(self) -> int:
        now = self._clock()
        dropped = 0
        while self._seen:
            tx_hash, seen_at = next(iter(self._seen.items()))
            if now - seen_at <= self.ttl:
                break
            del self._seen[tx_hash]
            dropped += 1
        return dropped

    def add(self, tx_hash: str) -> bool:
        """Record ``tx_hash``. False if it was already there."""
        if tx_hash in self._seen:
            return False
        self._seen[tx_hash] = self._clock()
        return True

    def clear(self) -> None:
        self._seen.clear()
