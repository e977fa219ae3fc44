"""
Library resolver service.
Maps backend candidate records onto concrete library items using identifier
lookups first and a title/artist search as the last resort.
"""

import logging
from typing import List, Optional

from audiomuse_mix.api.stores import LibraryStore
from audiomuse_mix.models.candidate import CandidateRecord, ResolvedItem
from audiomuse_mix.models.library_item import LibraryItem, ItemKind, User
from audiomuse_mix.utils.text import artist_matches

logger = logging.getLogger(__name__)

NATIVE_ID = "native_id"
RAW_ID = "raw_id"
METADATA_SEARCH = "metadata_search"

class LibraryResolver:
    """Resolves candidate records to library items, first match wins."""

    def __init__(self, store: LibraryStore, search_limit: int = 5):
        """
        Initialize the resolver.

        Args:
            store: Library store used for lookups and searches
            search_limit: Maximum hits considered by the title search
        """
        self.store = store
        self.search_limit = search_limit

    async def resolve(
        self,
        candidate: CandidateRecord,
        user: Optional[User] = None,
        kind: ItemKind = ItemKind.TRACK
    ) -> Optional[ResolvedItem]:
        """
        Resolve one candidate.

        Strategies run in order: native key lookup, literal id lookup, then a
        bounded title search preferring hits whose artists contain the
        candidate's artist. A hit the user cannot see counts as a miss.

        Returns:
            The resolved item, or None when nothing matched
        """
        resolved = await self._lookup_by_id(candidate)
        if resolved is None and candidate.title:
            resolved = await self._lookup_by_metadata(candidate, user, kind)

        if resolved is None:
            logger.debug(f"No library match for candidate {candidate.external_id!r} ({candidate.title})")
            return None

        if user is not None and not await self.store.is_visible(resolved.item, user):
            logger.debug(f"Item {resolved.key} is not visible to user {user.name}")
            return None

        logger.debug(f"Resolved {candidate.external_id!r} to {resolved.key} via {resolved.method}")
        return resolved

    async def _lookup_by_id(self, candidate: CandidateRecord) -> Optional[ResolvedItem]:
        native = self.store.native_key(candidate.external_id)
        if native is not None:
            item = await self.store.get_by_id(native)
            if item is not None:
                return ResolvedItem(item=item, method=NATIVE_ID)

        # Backends with their own id scheme still sometimes echo library ids verbatim
        if native != candidate.external_id:
            item = await self.store.get_by_id(candidate.external_id)
            if item is not None:
                return ResolvedItem(item=item, method=RAW_ID)

        return None

    async def _lookup_by_metadata(
        self,
        candidate: CandidateRecord,
        user: Optional[User],
        kind: ItemKind
    ) -> Optional[ResolvedItem]:
        hits = await self.store.search(candidate.title, kind, self.search_limit, user=user)
        if not hits:
            return None

        item = self._pick_hit(hits, candidate.artist)
        return ResolvedItem(item=item, method=METADATA_SEARCH)

    @staticmethod
    def _pick_hit(hits: List[LibraryItem], artist: Optional[str]) -> LibraryItem:
        if artist:
            for hit in hits:
                if artist_matches(artist, hit.artists):
                    return hit
        return hits[0]
