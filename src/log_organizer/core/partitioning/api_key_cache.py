"""
Memoized one-way hashing of API-key identifiers.
"""

import hashlib

UNDEFINED_API_KEY = "undefined"


class HashedApiKeyCache:
    """
    Maps raw API-key identifiers to their SHA-256 hex digest.

    Only avoids recomputing hashes; it is never persisted. Concurrent writers
    store identical values for a key, so unsynchronised access is harmless.
    """

    def __init__(self) -> None:
        self._hashes: dict[str, str] = {}
        self.hits = 0
        self.misses = 0

    def hash(self, api_key_id: str | None) -> str:
        """
        Return the hex SHA-256 of ``api_key_id``.

        Absent or empty identifiers map to the ``"undefined"`` sentinel so the
        partition segment is never empty.
        """
        if not api_key_id:
            return UNDEFINED_API_KEY

        hashed = self._hashes.get(api_key_id)
        if hashed is not None:
            self.hits += 1
            return hashed

        self.misses += 1
        hashed = hashlib.sha256(api_key_id.encode("utf-8")).hexdigest()
        self._hashes[api_key_id] = hashed
        return hashed

    def clear(self) -> None:
        self._hashes.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, api_key_id: object) -> bool:
        return api_key_id in self._hashes


# Shared by every invocation served by this process
default_cache = HashedApiKeyCache()
