"""
Playlist synchronization service.
Idempotently replaces the contents of an owner's named playlist, with a
non-blocking global sweep lock and per-owner locks. Clearing is verified
against the live playlist and retried, since the media server does not
guarantee that a removal is visible immediately.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Any, Awaitable, Callable, List, Optional, Sequence

from audiomuse_mix.api.base_client import APIError
from audiomuse_mix.api.stores import PlaylistStore
from audiomuse_mix.models.library_item import User
from audiomuse_mix.models.playlist import (
    Playlist, SyncTarget, SyncState, SyncOutcome, SweepResult
)
from audiomuse_mix.utils.locks import OwnerLockRegistry

logger = logging.getLogger(__name__)

TargetBuilder = Callable[[User], Awaitable[Optional[SyncTarget]]]
ProgressCallback = Callable[[float], None]

class InconsistentStateError(Exception):
    """The playlist vanished mid-sync or could not be cleared."""
    pass

class SyncCancelled(Exception):
    """Cooperative cancellation was requested for the sync in progress."""
    pass

@dataclass
class SyncConfig:
    """Tunables for playlist synchronization."""
    max_clear_attempts: int = 3
    retry_delay_seconds: float = 0.2
    playlist_name_template: str = "{username}-fingerprint"
    fingerprint_size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SyncConfig':
        """Build from the ``sync`` section of the settings."""
        defaults = cls()
        size = data.get("fingerprint_size", defaults.fingerprint_size)
        return cls(
            max_clear_attempts=max(1, int(data.get("max_clear_attempts", defaults.max_clear_attempts))),
            retry_delay_seconds=float(data.get("retry_delay_seconds", defaults.retry_delay_seconds)),
            playlist_name_template=data.get("playlist_name_template", defaults.playlist_name_template),
            fingerprint_size=int(size) if size is not None else None,
        )

    def playlist_name(self, username: str) -> str:
        return self.playlist_name_template.format(username=username)

def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SyncCancelled()

class PlaylistSyncManager:
    """Create-or-replace of named playlists under skip-don't-queue locking."""

    def __init__(
        self,
        playlist_store: PlaylistStore,
        lock_registry: OwnerLockRegistry,
        config: Optional[SyncConfig] = None
    ):
        """
        Initialize the sync manager.

        Args:
            playlist_store: Store the playlists are read from and written to
            lock_registry: Process-wide per-owner lock table
            config: Clear retry bound and delay
        """
        self.store = playlist_store
        self.lock_registry = lock_registry
        self.config = config or SyncConfig()
        self._sweep_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._sweep_lock.locked()

    async def sync(self, target: SyncTarget, cancel_event: Optional[asyncio.Event] = None) -> SyncOutcome:
        """Sync a single owner's playlist as a one-owner sweep."""
        if not self._sweep_lock.acquire(blocking=False):
            logger.warning(f"Sync already running, skipping '{target.playlist_name}' for {target.owner_label}")
            return SyncOutcome(target.owner_id, target.playlist_name, SyncState.SKIPPED,
                               reason="sync already running")
        try:
            return await self._sync_owner(target, cancel_event)
        finally:
            self._sweep_lock.release()

    async def _sync_owner(self, target: SyncTarget, cancel_event: Optional[asyncio.Event] = None) -> SyncOutcome:
        """Sync one owner under its owner lock; only called with the sweep lock held."""
        owner = User(id=target.owner_id, name=target.owner_label)

        async def fixed_target(_: User) -> SyncTarget:
            return target

        return await self._process_owner(owner, fixed_target, cancel_event)

    async def sweep(
        self,
        owners: Sequence[User],
        build_target: TargetBuilder,
        cancel_event: Optional[asyncio.Event] = None,
        progress: Optional[ProgressCallback] = None
    ) -> SweepResult:
        """
        Run one sync pass over ``owners``.

        ``build_target`` is awaited under the owner's lock and returns the
        desired playlist state, or None to skip the owner. A second sweep
        started while one is running returns immediately with ``skipped`` set.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.warning("Playlist sync sweep already running, skipping this run")
            return SweepResult(skipped=True)

        try:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Sweep cancelled before any owner was processed")
                return SweepResult(aborted=True)

            logger.info(f"Starting playlist sync sweep for {len(owners)} owners")
            outcomes: List[SyncOutcome] = []
            for index, owner in enumerate(owners):
                outcome = await self._process_owner(owner, build_target, cancel_event)
                outcomes.append(outcome)
                if progress:
                    progress((index + 1) / len(owners) * 100.0)

            result = SweepResult(outcomes=outcomes)
            logger.info(
                f"Sweep finished: {len(result.succeeded)} synced, {len(result.failed)} failed, "
                f"{len(outcomes) - len(result.succeeded) - len(result.failed)} skipped or cancelled"
            )
            return result
        finally:
            self._sweep_lock.release()
            if progress:
                progress(100.0)

    async def _process_owner(
        self,
        owner: User,
        build_target: TargetBuilder,
        cancel_event: Optional[asyncio.Event]
    ) -> SyncOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return SyncOutcome(owner.id, None, SyncState.CANCELLED, reason="cancelled")

        lease = self.lock_registry.acquire(owner.id)
        if lease is None:
            logger.warning(f"Playlist sync for {owner.name} already in progress, skipping")
            return SyncOutcome(owner.id, None, SyncState.SKIPPED, reason="owner lock held")

        playlist_name = None
        try:
            target = await build_target(owner)
            if target is None:
                return SyncOutcome(owner.id, None, SyncState.SKIPPED, reason="nothing to sync")
            playlist_name = target.playlist_name
            return await self._apply(target, cancel_event)
        except SyncCancelled:
            logger.info(f"Sync for {owner.name} cancelled")
            return SyncOutcome(owner.id, playlist_name, SyncState.CANCELLED, reason="cancelled")
        except InconsistentStateError as e:
            logger.error(f"Sync for {owner.name} failed: {e}")
            return SyncOutcome(owner.id, playlist_name, SyncState.FAILED, reason=str(e))
        except (APIError, ValueError) as e:
            logger.error(f"Sync for {owner.name} failed: {e}")
            return SyncOutcome(owner.id, playlist_name, SyncState.FAILED, reason=str(e))
        finally:
            lease.release()

    async def _apply(self, target: SyncTarget, cancel_event: Optional[asyncio.Event]) -> SyncOutcome:
        _check_cancelled(cancel_event)
        playlist = await self._find(target.owner_id, lambda p: p.matches_name(target.playlist_name))

        if playlist is None:
            _check_cancelled(cancel_event)
            await self.store.create_playlist(target.playlist_name, target.owner_id, target.desired_items)
            logger.info(
                f"Created playlist '{target.playlist_name}' for {target.owner_label} "
                f"with {len(target.desired_items)} items"
            )
            return SyncOutcome(target.owner_id, target.playlist_name, SyncState.DONE,
                               created=True, item_count=len(target.desired_items))

        attempts = await self._clear(playlist, target, cancel_event)

        if target.desired_items:
            _check_cancelled(cancel_event)
            await self.store.add_items(playlist.id, target.desired_items, target.owner_id)

        logger.info(
            f"Replaced contents of '{target.playlist_name}' for {target.owner_label} "
            f"with {len(target.desired_items)} items"
        )
        return SyncOutcome(target.owner_id, target.playlist_name, SyncState.DONE,
                           item_count=len(target.desired_items), clear_attempts=attempts)

    async def _clear(self, playlist: Playlist, target: SyncTarget,
                     cancel_event: Optional[asyncio.Event]) -> int:
        """Remove every entry, verifying against a fresh read. Returns removal attempts made."""
        max_attempts = self.config.max_clear_attempts
        _check_cancelled(cancel_event)
        entries = await self.store.get_manageable_items(playlist)

        attempt = 0
        while entries:
            attempt += 1
            _check_cancelled(cancel_event)
            await self.store.remove_items(playlist.id, [entry.entry_id for entry in entries])

            _check_cancelled(cancel_event)
            refreshed = await self._find(target.owner_id, lambda p: p.id == playlist.id)
            if refreshed is None:
                raise InconsistentStateError(f"Playlist '{playlist.name}' ({playlist.id}) disappeared while clearing")
            playlist = refreshed

            _check_cancelled(cancel_event)
            entries = await self.store.get_manageable_items(playlist)
            if not entries:
                break
            if attempt >= max_attempts:
                raise InconsistentStateError(
                    f"Playlist '{playlist.name}' still has {len(entries)} items after {attempt} clear attempts"
                )

            logger.warning(
                f"Playlist '{playlist.name}' still has {len(entries)} items after clear attempt "
                f"{attempt}/{max_attempts}, retrying"
            )
            await self._pause(cancel_event)

        return attempt

    async def _find(self, owner_id: str, predicate: Callable[[Playlist], bool]) -> Optional[Playlist]:
        for playlist in await self.store.list_playlists(owner_id):
            if predicate(playlist):
                return playlist
        return None

    async def _pause(self, cancel_event: Optional[asyncio.Event]) -> None:
        delay = self.config.retry_delay_seconds
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise SyncCancelled()
