"""
Mix engine service.
Wires the backend client, the media server client and the services together
from application settings, and owns their connections.
"""

import asyncio
import logging
import random
from typing import Dict, Any, Optional, Sequence

from config.settings import Settings
from audiomuse_mix.api.audiomuse_client import AudioMuseClient
from audiomuse_mix.api.base_client import APIError
from audiomuse_mix.api.jellyfin_client import JellyfinClient
from audiomuse_mix.models.mix import MixResult
from audiomuse_mix.models.playlist import SweepResult
from audiomuse_mix.services.fingerprint_task import FingerprintPlaylistTask
from audiomuse_mix.services.library_resolver import LibraryResolver
from audiomuse_mix.services.mix_aggregator import MixAggregator, MixConfig
from audiomuse_mix.services.playlist_sync import PlaylistSyncManager, SyncConfig
from audiomuse_mix.utils.cache import ResponseCache
from audiomuse_mix.utils.locks import OwnerLockRegistry

logger = logging.getLogger(__name__)

class MixEngine:
    """Entry point for instant mixes and fingerprint playlist sweeps."""

    def __init__(self, settings: Settings, lock_registry: Optional[OwnerLockRegistry] = None,
                 rng: Optional[random.Random] = None):
        """
        Initialize the engine.

        Args:
            settings: Application settings with endpoints and engine tunables
            lock_registry: Per-owner lock table; one per process
            rng: Random source shared by the services
        """
        self.settings = settings
        self.cache = ResponseCache(settings.cache.redis_url, key_prefix=settings.cache.key_prefix)
        self.backend = AudioMuseClient.from_settings(settings, cache=self.cache)
        self.library = JellyfinClient.from_settings(settings)

        rng = rng or random.Random()
        mix_config = MixConfig.from_dict(settings.mix)
        sync_config = SyncConfig.from_dict(settings.sync)
        resolver = LibraryResolver(self.library, search_limit=mix_config.search_limit)

        self.aggregator = MixAggregator(self.library, self.backend, resolver=resolver, config=mix_config, rng=rng)
        self.sync_manager = PlaylistSyncManager(self.library, lock_registry or OwnerLockRegistry(), sync_config)
        self.fingerprint_task = FingerprintPlaylistTask(
            self.library, self.backend, self.sync_manager, resolver=resolver, config=sync_config, rng=rng
        )

    async def __aenter__(self):
        """Async context manager entry."""
        await self.cache.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        await self.backend.close()
        await self.library.close()
        await self.cache.close()

    async def instant_mix(self, item_id: str, user_id: Optional[str] = None, limit: Optional[int] = None) -> MixResult:
        """Build an instant mix for ``item_id``, as seen by ``user_id`` when given."""
        user = None
        if user_id:
            try:
                user = await self.library.get_user(user_id)
            except APIError as e:
                logger.warning(f"Could not look up user {user_id}: {e}, building mix without user context")
            else:
                if user is None:
                    logger.warning(f"Unknown user {user_id}, building mix without user context")
        return await self.aggregator.aggregate(item_id, user=user, limit=limit)

    async def sync_fingerprints(
        self,
        users: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        progress=None
    ) -> SweepResult:
        """Refresh fingerprint playlists for all users, or only the named ones."""
        return await self.fingerprint_task.run(users=users, cancel_event=cancel_event, progress=progress)

    async def health(self) -> Dict[str, Any]:
        """Reachability of the backend and the media server."""
        status: Dict[str, Any] = {}
        try:
            response = await self.backend.health_check()
            status["audiomuse"] = {"status": response.status, "ok": response.ok}
        except APIError as e:
            status["audiomuse"] = {"status": None, "ok": False, "error": str(e)}
        try:
            users = await self.library.list_users()
            status["jellyfin"] = {"ok": True, "users": len(users)}
        except APIError as e:
            status["jellyfin"] = {"ok": False, "error": str(e)}
        return status
