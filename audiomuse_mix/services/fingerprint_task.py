"""
Sonic fingerprint playlist task.
For every user, asks the backend for the user's sonic fingerprint tracks and
syncs them into the user's "<name>-fingerprint" playlist.
"""

import logging
import random
from typing import List, Optional, Sequence

from audiomuse_mix.api.audiomuse_client import AudioMuseClient
from audiomuse_mix.api.base_client import APIError
from audiomuse_mix.api.stores import LibraryStore
from audiomuse_mix.models.library_item import User
from audiomuse_mix.models.playlist import SyncTarget, SweepResult
from audiomuse_mix.services.library_resolver import LibraryResolver
from audiomuse_mix.services.playlist_sync import PlaylistSyncManager, SyncConfig

logger = logging.getLogger(__name__)

class FingerprintPlaylistTask:
    """Scheduled sweep keeping each user's fingerprint playlist fresh."""

    def __init__(
        self,
        library: LibraryStore,
        backend: AudioMuseClient,
        sync_manager: PlaylistSyncManager,
        resolver: Optional[LibraryResolver] = None,
        config: Optional[SyncConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self.library = library
        self.backend = backend
        self.sync_manager = sync_manager
        self.resolver = resolver or LibraryResolver(library)
        self.config = config or sync_manager.config
        self.rng = rng or random.Random()

    async def run(self, users: Optional[Sequence[str]] = None, cancel_event=None, progress=None) -> SweepResult:
        """
        Run one sweep.

        Args:
            users: Restrict the sweep to these user names or ids; all users when None
            cancel_event: asyncio.Event requesting cooperative cancellation
            progress: Called with a completion percentage after each user
        """
        owners = await self._select_users(users)
        logger.info(f"Refreshing fingerprint playlists for {len(owners)} users")
        return await self.sync_manager.sweep(owners, self.build_target, cancel_event=cancel_event, progress=progress)

    async def _select_users(self, users: Optional[Sequence[str]]) -> List[User]:
        all_users = await self.library.list_users()
        if users is None:
            return all_users

        wanted = set(users)
        selected = [user for user in all_users if user.id in wanted or user.name in wanted]
        found = {user.id for user in selected} | {user.name for user in selected}
        for missing in sorted(wanted - found):
            logger.warning(f"Unknown user '{missing}', skipping")
        return selected

    async def build_target(self, owner: User) -> Optional[SyncTarget]:
        """Desired fingerprint playlist for ``owner``; None when there is nothing to write."""
        candidates = await self.backend.query_fingerprint(owner.name, quota=self.config.fingerprint_size)
        if not candidates:
            logger.info(f"No fingerprint tracks for {owner.name}")
            return None

        keys: List[str] = []
        seen = set()
        for candidate in candidates:
            try:
                resolved = await self.resolver.resolve(candidate, owner)
            except APIError as e:
                logger.warning(f"Library lookup failed for candidate {candidate.external_id!r}: {e}")
                continue
            if resolved is not None and resolved.key not in seen:
                seen.add(resolved.key)
                keys.append(resolved.key)

        if not keys:
            logger.info(f"None of {len(candidates)} fingerprint tracks for {owner.name} are in the library")
            return None

        self.rng.shuffle(keys)
        logger.info(f"Resolved {len(keys)} of {len(candidates)} fingerprint tracks for {owner.name}")
        return SyncTarget(
            owner_id=owner.id,
            playlist_name=self.config.playlist_name(owner.name),
            desired_items=keys,
            owner_name=owner.name,
        )
