"""
Instant mix aggregation service.
Turns a root item into an ordered, deduplicated, limit-bounded list of library
tracks by querying the similarity backend once per seed and resolving the
returned candidates against the library.
"""

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional

from audiomuse_mix.api.audiomuse_client import AudioMuseClient
from audiomuse_mix.api.base_client import APIError, TransportError
from audiomuse_mix.api.stores import LibraryStore
from audiomuse_mix.models.candidate import ResolvedItem, SeedItem
from audiomuse_mix.models.library_item import ItemKind, User
from audiomuse_mix.models.mix import Accumulator, MixResult
from audiomuse_mix.services.library_resolver import LibraryResolver
from audiomuse_mix.services.seed_selector import SeedSelector

logger = logging.getLogger(__name__)

ANCHOR = "anchor"
FALLBACK = "fallback"

class FallbackMode(str, Enum):
    """When library filler is added to a short mix."""
    MIN_VIABLE = "min_viable"          # only below min_viable_results
    FILL_TO_LIMIT = "fill_to_limit"    # whenever the mix is below its limit

class SeedFailurePolicy(str, Enum):
    """What a transport failure for one seed does to the rest of the run."""
    SKIP_SEED = "skip_seed"
    ABORT_REMAINING = "abort_remaining"

@dataclass
class MixConfig:
    """Tunables for mix aggregation."""
    default_limit: int = 200
    seed_cap: int = 20
    min_viable_results: int = 5
    search_limit: int = 5
    fallback_mode: FallbackMode = FallbackMode.MIN_VIABLE
    seed_failure_policy: SeedFailurePolicy = SeedFailurePolicy.SKIP_SEED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MixConfig':
        """Build from the ``mix`` section of the settings; unknown keys are ignored."""
        defaults = cls()
        return cls(
            default_limit=int(data.get("default_limit", defaults.default_limit)),
            seed_cap=max(1, int(data.get("seed_cap", defaults.seed_cap))),
            min_viable_results=int(data.get("min_viable_results", defaults.min_viable_results)),
            search_limit=int(data.get("search_limit", defaults.search_limit)),
            fallback_mode=FallbackMode(data.get("fallback_mode", defaults.fallback_mode)),
            seed_failure_policy=SeedFailurePolicy(data.get("seed_failure_policy", defaults.seed_failure_policy)),
        )

class MixAggregator:
    """Builds instant mixes from the similarity backend and the library."""

    def __init__(
        self,
        library: LibraryStore,
        backend: AudioMuseClient,
        resolver: Optional[LibraryResolver] = None,
        config: Optional[MixConfig] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the aggregator.

        Args:
            library: Library store for root lookup, seed enumeration and fallback
            backend: Similarity backend client
            resolver: Candidate resolver; built from ``library`` when omitted
            config: Aggregation tunables
            rng: Random source for seed order, anchor choice and fallback
        """
        self.library = library
        self.backend = backend
        self.config = config or MixConfig()
        self.resolver = resolver or LibraryResolver(library, search_limit=self.config.search_limit)
        self.rng = rng or random.Random()
        self.seed_selector = SeedSelector(library, seed_cap=self.config.seed_cap, rng=self.rng)

    async def aggregate(self, root_key: str, user: Optional[User] = None, limit: Optional[int] = None) -> MixResult:
        """
        Build a mix for the item identified by ``root_key``.

        Never raises for per-seed or per-candidate failures; those are logged
        and skipped. An unknown root yields ``MixResult.not_found``.
        """
        limit = self.config.default_limit if limit is None else limit

        try:
            root = await self.library.get_by_id(self.library.native_key(root_key) or root_key)
        except APIError as e:
            logger.error(f"Failed to look up root item {root_key}: {e}")
            return MixResult.not_found(root_key)

        if root is None:
            logger.warning(f"Root item {root_key} not found")
            return MixResult.not_found(root_key)

        logger.info(f"Building mix for {root.kind.value} '{root.display_name}' (limit {limit})")
        accumulator = Accumulator(limit)

        try:
            selection = await self.seed_selector.select(root, user)
        except APIError as e:
            logger.warning(f"Could not enumerate seeds for {root.key}: {e}")
            selection = None

        seed_count = 0
        if selection is not None and selection.anchor is not None:
            accumulator.add(ResolvedItem(item=selection.anchor, method=ANCHOR))
        if selection is not None and selection.seeds:
            seed_count = len(selection.seeds)
            await self._collect(selection.seeds, accumulator, user)

        fallback_used = await self._fallback(accumulator, user)

        result = MixResult(
            root_key=root.key,
            items=accumulator.items,
            root_name=root.name,
            seed_count=seed_count,
            fallback_used=fallback_used,
        )
        logger.info(f"Mix for '{root.name}' has {len(result)} items from {seed_count} seeds")
        return result

    def _quota(self, remaining: int, seed_count: int) -> int:
        if remaining <= 0 or seed_count <= 0:
            return 0
        quota = math.ceil(remaining / seed_count)
        # Over-fetch to cover resolution misses and cross-seed duplicates
        if seed_count > 1:
            quota *= 2
        return quota

    async def _collect(self, seeds, accumulator: Accumulator, user: Optional[User]) -> None:
        quota = self._quota(accumulator.remaining, len(seeds))
        if quota <= 0:
            return

        for index, seed in enumerate(seeds):
            if accumulator.is_full:
                break

            try:
                candidates = await self.backend.query_similar(seed, quota)
            except TransportError as e:
                if self.config.seed_failure_policy == SeedFailurePolicy.ABORT_REMAINING:
                    logger.warning(
                        f"Backend unreachable for seed '{seed.display_name}', "
                        f"abandoning {len(seeds) - index - 1} remaining seeds: {e}"
                    )
                    break
                logger.warning(f"Backend unreachable for seed '{seed.display_name}': {e}")
                continue
            except (APIError, ValueError) as e:
                logger.warning(f"Similarity query failed for seed '{seed.display_name}': {e}")
                continue

            added = await self._accumulate(seed, candidates, accumulator, user)
            logger.info(f"Seed '{seed.display_name}': {len(candidates)} candidates, {added} added")

    async def _accumulate(self, seed: SeedItem, candidates, accumulator: Accumulator,
                          user: Optional[User]) -> int:
        added = 0
        for candidate in candidates:
            if accumulator.is_full:
                break
            try:
                resolved = await self.resolver.resolve(candidate, user, ItemKind.TRACK)
            except APIError as e:
                logger.warning(f"Library lookup failed for candidate {candidate.external_id!r}: {e}")
                continue
            if resolved is not None and accumulator.add(resolved):
                added += 1
        return added

    async def _fallback(self, accumulator: Accumulator, user: Optional[User]) -> bool:
        if self.config.fallback_mode == FallbackMode.FILL_TO_LIMIT:
            threshold = accumulator.limit
        else:
            threshold = self.config.min_viable_results

        if len(accumulator) >= threshold or accumulator.is_full:
            return False

        logger.info(f"Mix has {len(accumulator)} items, filling up to {accumulator.limit} from the library")
        try:
            # Ask for enough to cover keys that are already present
            items = await self.library.list_items(
                ItemKind.TRACK, accumulator.remaining + len(accumulator), user=user
            )
        except APIError as e:
            logger.warning(f"Fallback library query failed: {e}")
            return False

        items = list(items)
        self.rng.shuffle(items)
        for item in items:
            if accumulator.is_full:
                break
            if item.key not in accumulator:
                accumulator.add(ResolvedItem(item=item, method=FALLBACK))
        return True
