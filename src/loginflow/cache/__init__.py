"""Persistent login-mode cache for loginflow.

This package provides :class:`ModeStore`, a :mod:`diskcache`-backed store
that lets separate processes reuse a resolved login mode until its TTL
runs out. It is enabled by ``mode_cache.persist`` in
:class:`~loginflow.models.Settings`.
"""

from loginflow.cache.cache import ModeStore

__all__ = ["ModeStore"]
