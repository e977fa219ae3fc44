"""
Mix accumulator and result models.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Set

from .candidate import ResolvedItem


class Accumulator:
    """
    Ordered, deduplicated, limit-bounded collection of resolved items.

    Insertion order is result order. The key set always mirrors the ordered
    items and the size never exceeds the limit. Confined to one aggregation run.
    """

    def __init__(self, limit: int):
        self.limit = max(0, limit)
        self._items: List[ResolvedItem] = []
        self._keys: Set[str] = set()

    def add(self, resolved: ResolvedItem) -> bool:
        """Append an item unless it is a duplicate or the accumulator is full."""
        if self.is_full or resolved.key in self._keys:
            return False
        self._items.append(resolved)
        self._keys.add(resolved.key)
        return True

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.limit

    @property
    def remaining(self) -> int:
        return self.limit - len(self._items)

    @property
    def keys(self) -> Set[str]:
        return set(self._keys)

    @property
    def items(self) -> List[ResolvedItem]:
        return list(self._items)


@dataclass
class MixResult:
    """Outcome of one aggregation run."""
    root_key: str
    items: List[ResolvedItem] = field(default_factory=list)
    root_found: bool = True
    root_name: Optional[str] = None
    seed_count: int = 0
    fallback_used: bool = False

    @classmethod
    def not_found(cls, root_key: str) -> 'MixResult':
        return cls(root_key=root_key, root_found=False)

    @property
    def keys(self) -> List[str]:
        return [resolved.key for resolved in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the query-result shape the media server clients expect."""
        return {
            "Items": [resolved.to_dict() for resolved in self.items],
            "TotalRecordCount": len(self.items),
            "root_key": self.root_key,
            "root_found": self.root_found,
            "root_name": self.root_name,
            "seed_count": self.seed_count,
            "fallback_used": self.fallback_used,
        }
