"""Process-wide cache of filesystem instances.

Filesystems resolved from URIs are cached per remote identity: scheme, host,
port and user, plus a digest of the credentials and the parsed options. Two
lookups share one facade, and therefore one session, only when every one of
those matches. Closing a cached filesystem evicts it.
``close_all_filesystems()`` runs at interpreter shutdown so open sessions are
released.

Example:
    >>> from f9_sftp_backend import resolve_filesystem
    >>> a = resolve_filesystem("sftp://deploy@files.example.com")
    >>> b = resolve_filesystem("sftp://deploy@files.example.com")
    >>> a is b
    True
    >>> close_all_filesystems()

"""

from __future__ import annotations

import atexit
import hashlib
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .config import ConnectionEndpoint, SFTPOptions
    from .interfaces import FileSystem

CacheKey = tuple[Any, ...]

logger = logging.getLogger(__name__)


def make_cache_key(
    scheme: str,
    endpoint: ConnectionEndpoint,
    options: SFTPOptions,
) -> CacheKey:
    """Build the cache key for a validated endpoint and its options.

    Secrets enter the key only as a SHA-256 digest so listing the cache never
    exposes them.
    """
    digest = hashlib.sha256()
    for secret in (endpoint.password, endpoint.key_material, endpoint.key_passphrase):
        # None and "" must hash differently; an empty password is still a password
        digest.update(b"\x00" if secret is None else b"\x01" + secret.encode())
        digest.update(b"\xff")
    return (
        scheme,
        endpoint.host.lower(),
        endpoint.port,
        endpoint.username,
        digest.hexdigest(),
        options,
    )


class FileSystemCache:
    """Thread-safe mapping from cache keys to open filesystems."""

    def __init__(self) -> None:
        """Initialise an empty cache."""
        self._entries: dict[CacheKey, FileSystem] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        key: CacheKey,
        factory: Callable[[Callable[[FileSystem], None]], FileSystem],
    ) -> FileSystem:
        """Return the cached filesystem for ``key``, creating it if needed.

        The factory runs without the cache lock held, so a slow eager
        connection to one host never blocks lookups for another. When two
        callers race on the same key the first insert wins and the loser's
        filesystem is closed.

        Args:
            key: Cache key identifying the remote filesystem.
            factory: Called with an eviction callback that the new filesystem
                must invoke when it closes.

        """
        with self._lock:
            existing = self._entries.get(key)
        if existing is not None:
            return existing

        filesystem = factory(lambda fs: self.evict(key, fs))
        with self._lock:
            existing = self._entries.setdefault(key, filesystem)
        if existing is not filesystem:
            filesystem.close()
        return existing

    def evict(self, key: CacheKey, filesystem: FileSystem) -> None:
        """Remove ``filesystem`` if it is still the entry for ``key``."""
        with self._lock:
            if self._entries.get(key) is filesystem:
                del self._entries[key]

    def get(self, key: CacheKey) -> FileSystem | None:
        """Return the cached filesystem for ``key`` or None."""
        with self._lock:
            return self._entries.get(key)

    def keys(self) -> list[CacheKey]:
        """List cached keys in insertion order."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close_all(self) -> None:
        """Close and evict every cached filesystem."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for filesystem in entries:
            filesystem.close()
        if entries:
            logger.info("Closed %d cached filesystem(s)", len(entries))


# Global cache used by resolve_filesystem
_default_cache = FileSystemCache()


def get_default_cache() -> FileSystemCache:
    """Return the process-wide filesystem cache."""
    return _default_cache


def close_all_filesystems() -> None:
    """Close every filesystem in the process-wide cache."""
    _default_cache.close_all()


atexit.register(close_all_filesystems)
