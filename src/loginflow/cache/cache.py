"""Disk-backed store for resolved login modes.

Uses :mod:`diskcache` to share a :class:`~loginflow.models.ResolvedMode`
between processes talking to the same API, so that short-lived CLI
invocations do not each query the supported modes again. Entries are keyed
by a SHA-256 hash of the API base URL and expire with the mode's TTL.

The store is only a seed for :class:`~loginflow.auth.resolver.LoginModeResolver`;
the resolver still checks the entry against its own clock before trusting
it.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional

import diskcache
from pydantic import ValidationError

from loginflow.models import ResolvedMode

logger = logging.getLogger(__name__)


class ModeStore:
    """Persistent cache of one resolved login mode per API base URL.

    Args:
        cache_dir: Root directory for the cache. A ``modes/`` subdirectory
            is created inside it.
        base_url: The API the stored mode belongs to.

    Example::

        store = ModeStore("/tmp/loginflow-cache", "https://api.example.com")
        store.save(ResolvedMode(mode=LoginMode.PASSWORD, resolved_at=time.time(), ttl=600))
        hit = store.load()
    """

    def __init__(self, cache_dir: str | Path, base_url: str) -> None:
        self._cache_dir = Path(cache_dir)
        self._key = hashlib.sha256(base_url.rstrip("/").encode()).hexdigest()
        self._cache = diskcache.Cache(str(self._cache_dir / "modes"))

    def load(self) -> Optional[ResolvedMode]:
        """Return the stored mode, or ``None`` on a miss or an unreadable entry."""
        raw = self._cache.get(self._key)
        if raw is None:
            return None
        try:
            return ResolvedMode.model_validate(raw)
        except ValidationError:
            logger.debug("Discarding unreadable cached mode")
            self._cache.delete(self._key)
            return None

    def save(self, resolved: ResolvedMode) -> None:
        """Store *resolved*, expiring with its TTL."""
        self._cache.set(self._key, resolved.model_dump(mode="json"), expire=resolved.ttl)

    def clear(self) -> None:
        """Remove the stored mode for this API."""
        self._cache.delete(self._key)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
