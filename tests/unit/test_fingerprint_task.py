#!/usr/bin/env python3
"""
Unit tests for FingerprintPlaylistTask.
"""

import pytest

from audiomuse_mix.api.base_client import TransportError
from audiomuse_mix.models.candidate import CandidateRecord
from audiomuse_mix.models.playlist import SyncState
from audiomuse_mix.services.fingerprint_task import FingerprintPlaylistTask
from audiomuse_mix.services.playlist_sync import PlaylistSyncManager, SyncConfig
from audiomuse_mix.utils.locks import OwnerLockRegistry

@pytest.fixture
def task(library, backend, playlist_store, rng, alice, bob):
    library.users = [alice, bob]
    manager = PlaylistSyncManager(playlist_store, OwnerLockRegistry(), SyncConfig(retry_delay_seconds=0))
    return FingerprintPlaylistTask(library, backend, manager, rng=rng)

@pytest.fixture
def tracks(library, track_factory):
    return [library.add(track_factory(f"t{i}")) for i in range(6)]

class TestFingerprintPlaylistTask:
    """Unit tests for the fingerprint playlist sweep."""

    @pytest.mark.asyncio
    async def test_builds_fingerprint_playlists(self, task, backend, playlist_store, tracks, candidate_factory, alice, bob):
        backend.fingerprints["alice"] = [candidate_factory(t) for t in tracks[:4]]
        backend.fingerprints["bob"] = [candidate_factory(t) for t in tracks[2:]]

        result = await task.run()

        assert len(result.succeeded) == 2
        alice_playlist = playlist_store.find(alice.id, "alice-fingerprint")
        bob_playlist = playlist_store.find(bob.id, "bob-fingerprint")
        assert sorted(playlist_store.contents(alice_playlist.id)) == ["t0", "t1", "t2", "t3"]
        assert sorted(playlist_store.contents(bob_playlist.id)) == ["t2", "t3", "t4", "t5"]

    @pytest.mark.asyncio
    async def test_backend_failure_fails_only_that_user(self, task, backend, tracks, candidate_factory,
                                                        backend_error, alice, bob):
        backend.fingerprints["alice"] = backend_error
        backend.fingerprints["bob"] = [candidate_factory(tracks[0])]

        result = await task.run()

        assert result.outcome_for(alice.id).state == SyncState.FAILED
        assert result.outcome_for(bob.id).state == SyncState.DONE

    @pytest.mark.asyncio
    async def test_transport_failure_fails_user(self, task, backend, alice):
        backend.fingerprints["alice"] = TransportError("timeout")

        result = await task.run(users=["alice"])

        assert result.outcome_for(alice.id).state == SyncState.FAILED

    @pytest.mark.asyncio
    async def test_empty_fingerprint_skips(self, task, playlist_store, alice):
        result = await task.run(users=["alice"])

        assert result.outcome_for(alice.id).state == SyncState.SKIPPED
        assert playlist_store.mutations() == []

    @pytest.mark.asyncio
    async def test_nothing_resolved_skips(self, task, backend, playlist_store, alice):
        backend.fingerprints["alice"] = [CandidateRecord(external_id="unknown", title="Nope")]

        result = await task.run(users=["alice"])

        assert result.outcome_for(alice.id).state == SyncState.SKIPPED
        assert playlist_store.mutations() == []

    @pytest.mark.asyncio
    async def test_duplicates_and_hidden_items_are_dropped(self, task, backend, library, playlist_store,
                                                           tracks, candidate_factory, alice):
        library.hide(alice, "t1")
        backend.fingerprints["alice"] = [candidate_factory(t) for t in [tracks[0], tracks[1], tracks[0], tracks[2]]]

        await task.run(users=["alice"])

        playlist = playlist_store.find(alice.id, "alice-fingerprint")
        assert sorted(playlist_store.contents(playlist.id)) == ["t0", "t2"]

    @pytest.mark.asyncio
    async def test_user_filter_accepts_ids_and_names(self, task, backend, alice, bob):
        result = await task.run(users=[bob.id, "nobody"])

        assert [o.owner_id for o in result.outcomes] == [bob.id]
        assert backend.calls == [("query_fingerprint", "bob", None)]

    @pytest.mark.asyncio
    async def test_fingerprint_size_is_passed(self, library, backend, playlist_store, alice):
        library.users = [alice]
        config = SyncConfig(retry_delay_seconds=0, fingerprint_size=50)
        manager = PlaylistSyncManager(playlist_store, OwnerLockRegistry(), config)

        await FingerprintPlaylistTask(library, backend, manager).run()

        assert backend.calls == [("query_fingerprint", "alice", 50)]
