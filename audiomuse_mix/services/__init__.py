"""Mix aggregation and playlist synchronization services."""

from .library_resolver import LibraryResolver
from .seed_selector import SeedSelector, SeedSelection
from .mix_aggregator import MixAggregator, MixConfig, FallbackMode, SeedFailurePolicy
from .playlist_sync import PlaylistSyncManager, SyncConfig, InconsistentStateError, SyncCancelled
from .fingerprint_task import FingerprintPlaylistTask
from .engine import MixEngine

__all__ = [
    'LibraryResolver',
    'SeedSelector',
    'SeedSelection',
    'MixAggregator',
    'MixConfig',
    'FallbackMode',
    'SeedFailurePolicy',
    'PlaylistSyncManager',
    'SyncConfig',
    'InconsistentStateError',
    'SyncCancelled',
    'FingerprintPlaylistTask',
    'MixEngine'
]
