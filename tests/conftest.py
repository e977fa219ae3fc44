"""
Pytest configuration and shared fixtures for the AudioMuse mix tests.
In-memory stores and a scripted similarity backend stand in for the HTTP services.
"""

import random
import pytest
from typing import Dict, List, Optional

from audiomuse_mix.api.base_client import BackendRequestError, StoreError
from audiomuse_mix.api.stores import LibraryStore, PlaylistStore
from audiomuse_mix.models.candidate import CandidateRecord
from audiomuse_mix.models.library_item import LibraryItem, ItemKind, User
from audiomuse_mix.models.playlist import Playlist, PlaylistEntry
from config.settings import Settings
from unittest.mock import Mock


class FakeLibrary(LibraryStore):
    """Library store over plain dicts."""

    def __init__(self):
        self.items: Dict[str, LibraryItem] = {}
        self.children: Dict[str, List[str]] = {}
        self.hidden: Dict[str, set] = {}
        self.users: List[User] = []
        self.calls: List[tuple] = []
        self.fail_lookups_for: set = set()

    def add(self, item: LibraryItem) -> LibraryItem:
        self.items[item.key] = item
        return item

    def add_container(self, container: LibraryItem, tracks: List[LibraryItem]) -> LibraryItem:
        self.add(container)
        for track in tracks:
            self.add(track)
        self.children[container.key] = [track.key for track in tracks]
        return container

    def hide(self, user: User, key: str):
        self.hidden.setdefault(user.id, set()).add(key)

    def _visible(self, key: str, user: Optional[User]) -> bool:
        return user is None or key not in self.hidden.get(user.id, set())

    async def get_by_id(self, key):
        self.calls.append(("get_by_id", key))
        if key in self.fail_lookups_for:
            raise StoreError(500, "lookup failed")
        return self.items.get(key)

    async def search(self, text, kind, limit, user=None):
        self.calls.append(("search", text, kind, limit))
        needle = text.casefold()
        hits = [
            item for item in self.items.values()
            if item.kind == kind and needle in item.name.casefold() and self._visible(item.key, user)
        ]
        return hits[:limit]

    async def list_children(self, container, recursive=True, user=None):
        self.calls.append(("list_children", container.key))
        keys = self.children.get(container.key, [])
        return [self.items[key] for key in keys if self._visible(key, user)]

    async def list_items(self, kind, limit, user=None):
        self.calls.append(("list_items", kind, limit))
        pool = [item for item in self.items.values() if item.kind == kind and self._visible(item.key, user)]
        return pool[:limit]

    async def is_visible(self, item, user):
        return self._visible(item.key, user)

    async def list_users(self):
        return list(self.users)


class FakePlaylistStore(PlaylistStore):
    """
    Playlist store with controllable consistency.

    ``ignored_removals`` removal calls are acknowledged without effect, and
    ``vanish_on_remove`` deletes the playlist when a removal is issued.
    """

    def __init__(self):
        self.playlists: Dict[str, Playlist] = {}
        self.entries: Dict[str, List[PlaylistEntry]] = {}
        self.calls: List[tuple] = []
        self.ignored_removals = 0
        self.vanish_on_remove = False
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def seed_playlist(self, name: str, owner_id: str, item_keys: List[str]) -> Playlist:
        playlist = Playlist(id=self._next_id("playlist"), name=name, owner_id=owner_id)
        self.playlists[playlist.id] = playlist
        self.entries[playlist.id] = [PlaylistEntry(self._next_id("entry"), key) for key in item_keys]
        return playlist

    def contents(self, playlist_id: str) -> List[str]:
        return [entry.item_key for entry in self.entries.get(playlist_id, [])]

    def find(self, owner_id: str, name: str) -> Optional[Playlist]:
        for playlist in self.playlists.values():
            if playlist.owner_id == owner_id and playlist.matches_name(name):
                return playlist
        return None

    def mutations(self) -> List[tuple]:
        return [call for call in self.calls if call[0] in ("create_playlist", "remove_items", "add_items")]

    async def list_playlists(self, owner_id):
        self.calls.append(("list_playlists", owner_id))
        return [p for p in self.playlists.values() if p.owner_id == owner_id]

    async def create_playlist(self, name, owner_id, item_keys):
        self.calls.append(("create_playlist", name, owner_id, list(item_keys)))
        return self.seed_playlist(name, owner_id, list(item_keys))

    async def get_manageable_items(self, playlist):
        self.calls.append(("get_manageable_items", playlist.id))
        return list(self.entries.get(playlist.id, []))

    async def remove_items(self, playlist_id, entry_ids):
        self.calls.append(("remove_items", playlist_id, list(entry_ids)))
        if self.vanish_on_remove:
            self.playlists.pop(playlist_id, None)
            self.entries.pop(playlist_id, None)
            return
        if self.ignored_removals > 0:
            self.ignored_removals -= 1
            return
        doomed = set(entry_ids)
        self.entries[playlist_id] = [e for e in self.entries.get(playlist_id, []) if e.entry_id not in doomed]

    async def add_items(self, playlist_id, item_keys, owner_id):
        self.calls.append(("add_items", playlist_id, list(item_keys), owner_id))
        self.entries.setdefault(playlist_id, []).extend(
            PlaylistEntry(self._next_id("entry"), key) for key in item_keys
        )


class FakeBackend:
    """Similarity backend answering from per-seed scripts."""

    def __init__(self):
        self.similar: Dict[str, object] = {}
        self.fingerprints: Dict[str, object] = {}
        self.calls: List[tuple] = []

    async def query_similar(self, seed, quota, dedupe=None):
        self.calls.append(("query_similar", seed.identity, quota))
        result = self.similar.get(seed.identity, [])
        if isinstance(result, Exception):
            raise result
        return list(result)[:quota]

    async def query_fingerprint(self, user_identifier, quota=None):
        self.calls.append(("query_fingerprint", user_identifier, quota))
        result = self.fingerprints.get(user_identifier, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


def make_track(key: str, name: Optional[str] = None, artist: str = "Test Artist") -> LibraryItem:
    return LibraryItem(key=key, name=name or f"Song {key}", kind=ItemKind.TRACK, artists=[artist])


def candidate_for(item: LibraryItem) -> CandidateRecord:
    return CandidateRecord(external_id=item.key, title=item.name, artist=item.artist)


@pytest.fixture
def library():
    return FakeLibrary()

@pytest.fixture
def playlist_store():
    return FakePlaylistStore()

@pytest.fixture
def backend():
    return FakeBackend()

@pytest.fixture
def rng():
    """Deterministic random source."""
    return random.Random(1234)

@pytest.fixture
def track_factory():
    return make_track

@pytest.fixture
def candidate_factory():
    return candidate_for

@pytest.fixture
def backend_error():
    return BackendRequestError(500, "internal error")

@pytest.fixture
def alice():
    return User(id="user-alice", name="alice")

@pytest.fixture
def bob():
    return User(id="user-bob", name="bob")

@pytest.fixture
def mock_settings():
    """Mock settings for testing."""
    settings = Mock(spec=Settings)
    settings.AUDIOMUSE_URL = "http://audiomuse.test"
    settings.JELLYFIN_URL = "http://jellyfin.test"
    settings.JELLYFIN_TOKEN = "test_token"
    settings.REDIS_URL = None
    settings.mix = {
        "default_limit": 200,
        "seed_cap": 20,
        "min_viable_results": 5,
        "search_limit": 5,
        "fallback_mode": "min_viable",
        "seed_failure_policy": "skip_seed"
    }
    settings.sync = {
        "max_clear_attempts": 3,
        "retry_delay_seconds": 0.0,
        "playlist_name_template": "{username}-fingerprint",
        "fingerprint_size": None
    }
    return settings
