"""Data models for the instant mix and playlist sync engine."""

from .library_item import LibraryItem, ItemKind, User
from .candidate import SeedItem, CandidateRecord, ResolvedItem
from .mix import Accumulator, MixResult
from .playlist import Playlist, PlaylistEntry, SyncTarget, SyncState, SyncOutcome, SweepResult

__all__ = [
    'LibraryItem',
    'ItemKind',
    'User',
    'SeedItem',
    'CandidateRecord',
    'ResolvedItem',
    'Accumulator',
    'MixResult',
    'Playlist',
    'PlaylistEntry',
    'SyncTarget',
    'SyncState',
    'SyncOutcome',
    'SweepResult'
]
