#!/usr/bin/env python3
"""
Integration tests wiring aggregation into playlist synchronization.
"""

import random
import pytest

from audiomuse_mix.models.library_item import LibraryItem, ItemKind
from audiomuse_mix.models.playlist import SyncTarget, SyncState
from audiomuse_mix.services.mix_aggregator import MixAggregator, MixConfig
from audiomuse_mix.services.playlist_sync import PlaylistSyncManager, SyncConfig
from audiomuse_mix.utils.locks import OwnerLockRegistry

class TestMixToPlaylist:
    """End-to-end flow from a root item to a persisted playlist."""

    @pytest.mark.asyncio
    async def test_album_mix_is_persisted_in_order(self, library, backend, playlist_store, track_factory,
                                                   candidate_factory, alice):
        pool = [library.add(track_factory(f"p{i}")) for i in range(40)]
        album_tracks = [track_factory(f"a{i}") for i in range(4)]
        library.add_container(LibraryItem(key="album", name="Album", kind=ItemKind.ALBUM), album_tracks)
        for i, track in enumerate(album_tracks):
            backend.similar[track.key] = [candidate_factory(t) for t in pool[i * 5:i * 5 + 8]]

        aggregator = MixAggregator(library, backend, config=MixConfig(), rng=random.Random(3))
        mix = await aggregator.aggregate("album", user=alice, limit=15)

        assert len(mix) == 15
        assert len(set(mix.keys)) == 15
        assert not mix.fallback_used

        manager = PlaylistSyncManager(playlist_store, OwnerLockRegistry(), SyncConfig(retry_delay_seconds=0))
        target = SyncTarget(owner_id=alice.id, playlist_name="Album mix", desired_items=mix.keys, owner_name=alice.name)

        first = await manager.sync(target)
        second = await manager.sync(target)

        assert first.created and first.state == SyncState.DONE
        assert second.state == SyncState.DONE and not second.created
        playlist = playlist_store.find(alice.id, "Album mix")
        assert playlist_store.contents(playlist.id) == mix.keys

    @pytest.mark.asyncio
    async def test_many_seeds_limit_invariant(self, library, backend, track_factory, candidate_factory):
        """Every run stays within its limit and never repeats a key."""
        pool = [library.add(track_factory(f"p{i}")) for i in range(60)]
        album_tracks = [track_factory(f"a{i}") for i in range(30)]
        library.add_container(LibraryItem(key="album", name="Big", kind=ItemKind.ALBUM), album_tracks)
        rng = random.Random(11)
        for track in album_tracks:
            backend.similar[track.key] = [candidate_factory(t) for t in rng.sample(pool, 12)]

        for limit in (1, 5, 17, 50, 200):
            mix = await MixAggregator(library, backend, rng=random.Random(limit)).aggregate("album", limit=limit)
            assert len(mix) <= limit
            assert len(set(mix.keys)) == len(mix)
            assert mix.items[0].method == "anchor"
            assert mix.seed_count == 20
