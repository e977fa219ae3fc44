"""Utility modules for the instant mix and playlist sync engine."""

from .cache import ResponseCache
from .locks import OwnerLockRegistry, LockLease
from .text import normalize_string, artist_matches

__all__ = [
    'ResponseCache',
    'OwnerLockRegistry',
    'LockLease',
    'normalize_string',
    'artist_matches'
]
