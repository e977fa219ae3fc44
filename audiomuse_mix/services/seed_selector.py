"""
Seed selection for instant mixes.
Derives the anchor item and the seed list from a root item, one strategy per item kind.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from audiomuse_mix.api.stores import LibraryStore
from audiomuse_mix.models.candidate import SeedItem
from audiomuse_mix.models.library_item import LibraryItem, ItemKind, User

logger = logging.getLogger(__name__)

@dataclass
class SeedSelection:
    """Anchor and ordered seeds for one aggregation run."""
    anchor: Optional[LibraryItem] = None
    seeds: List[SeedItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.seeds

class SeedSelector:
    """Chooses seeds for a root item."""

    def __init__(self, store: LibraryStore, seed_cap: int = 20, rng: Optional[random.Random] = None):
        self.store = store
        self.seed_cap = seed_cap
        self.rng = rng or random.Random()
        self._strategies = {
            ItemKind.TRACK: self._from_track,
            ItemKind.ALBUM: self._from_container,
            ItemKind.ARTIST: self._from_container,
            ItemKind.PLAYLIST: self._from_container,
            ItemKind.FOLDER: self._from_container,
        }

    async def select(self, root: LibraryItem, user: Optional[User] = None) -> SeedSelection:
        strategy = self._strategies.get(root.kind)
        if strategy is None:
            logger.warning(f"Cannot derive seeds from {root.kind.value} item {root.key}")
            return SeedSelection()
        return await strategy(root, user)

    async def _from_track(self, root: LibraryItem, user: Optional[User]) -> SeedSelection:
        return SeedSelection(anchor=root, seeds=[SeedItem.from_item(root)])

    async def _from_container(self, root: LibraryItem, user: Optional[User]) -> SeedSelection:
        tracks = await self.store.list_children(root, recursive=True, user=user)
        if not tracks:
            logger.info(f"{root.kind.value.capitalize()} '{root.name}' has no playable tracks")
            return SeedSelection()

        shuffled = list(tracks)
        self.rng.shuffle(shuffled)
        anchor = self.rng.choice(shuffled)
        seeds = [SeedItem.from_item(track) for track in shuffled[:self.seed_cap]]

        logger.info(
            f"Selected {len(seeds)} of {len(tracks)} tracks from {root.kind.value} "
            f"'{root.name}' as seeds, anchor '{anchor.display_name}'"
        )
        return SeedSelection(anchor=anchor, seeds=seeds)
