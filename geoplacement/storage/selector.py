"""Node selection for batch placement.

Each eligible candidate gets three sub-scores on a 0-100 scale:

- distance: ``(MAX_VALID_DISTANCE - d) * 100 / MAX_VALID_DISTANCE``, 0 when
  ``d >= MAX_VALID_DISTANCE``
- capacity: share of free capacity, ``(capacity - used) * 100 / capacity``
- credit: ``credit_score * 100 / 100``, the score taken as already 0-100

The composite is their unweighted mean with truncating integer division.
The top ``k`` composites are kept in descending order; on an exact tie the
candidate seen first stays ahead.
"""
import bisect
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..config.placement_config import CreditPolicy
from ..models.base import Location, StorageNode, is_int
from .errors import ValidationError
from .geo import distance

logger = logging.getLogger(__name__)

DEFAULT_MAX_VALID_DISTANCE = 10 ** 14


@dataclass(frozen=True)
class ScoredNode:
    node_id: str
    score: int
    distance_score: int
    capacity_score: int
    credit_score: int


class TopKRanking:
    """Bounded descending ranking with first-seen-wins tie breaking.

    A new entry goes in front of the first entry whose score is strictly
    lower, so equal scores keep insertion order. Entries pushed past
    position ``k - 1`` are dropped.
    """

    def __init__(self, k: int):
        self.k = k
        self._keys: List[int] = []  # negated scores, ascending
        self._entries: List[ScoredNode] = []

    def offer(self, entry: ScoredNode) -> bool:
        """Insert an entry; returns False if it did not make the cut."""
        position = bisect.bisect_right(self._keys, -entry.score)
        if position >= self.k:
            return False
        self._keys.insert(position, -entry.score)
        self._entries.insert(position, entry)
        if len(self._entries) > self.k:
            self._keys.pop()
            self._entries.pop()
        return True

    def entries(self) -> List[ScoredNode]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class NodeSelector:
    """Ranks candidate nodes for a target location.

    Never mutates the registry; callers pass a snapshot of the candidates.
    """

    def __init__(
        self,
        credit_policy: Optional[CreditPolicy] = None,
        max_valid_distance: int = DEFAULT_MAX_VALID_DISTANCE,
    ):
        if not is_int(max_valid_distance) or max_valid_distance <= 0:
            raise ValueError("max_valid_distance must be a positive integer")
        self.credit_policy = credit_policy or CreditPolicy()
        self.max_valid_distance = max_valid_distance

    def is_eligible(self, node: StorageNode, minimum_credit_score: Optional[int] = None) -> bool:
        if minimum_credit_score is None:
            minimum_credit_score = self.credit_policy.minimum_credit_score
        return (
            node.is_active
            and node.capacity > node.used_capacity
            and node.credit_score >= minimum_credit_score
        )

    def distance_score(self, location: Location, node: StorageNode) -> int:
        d = distance(location, node.location)
        if d >= self.max_valid_distance:
            return 0
        return (self.max_valid_distance - d) * 100 // self.max_valid_distance

    @staticmethod
    def capacity_score(node: StorageNode) -> int:
        return (node.capacity - node.used_capacity) * 100 // node.capacity

    @staticmethod
    def credit_score(node: StorageNode) -> int:
        return node.credit_score * 100 // 100

    def score(self, location: Location, node: StorageNode) -> ScoredNode:
        distance_score = self.distance_score(location, node)
        capacity_score = self.capacity_score(node)
        credit_score = self.credit_score(node)
        return ScoredNode(
            node_id=node.node_id,
            score=(distance_score + capacity_score + credit_score) // 3,
            distance_score=distance_score,
            capacity_score=capacity_score,
            credit_score=credit_score,
        )

    def rank(self, location: Location, candidates: Iterable[StorageNode], k: int) -> List[ScoredNode]:
        """Score eligible candidates and keep the best ``k``.

        Args:
            location: Target location of the batch
            candidates: Nodes to consider, in registry iteration order
            k: Maximum number of nodes to return

        Returns:
            List[ScoredNode]: At most ``k`` entries, highest score first
        """
        if not is_int(k) or k < 0:
            raise ValidationError(f"k must be a non-negative integer: {k!r}", "InvalidK")
        if k == 0:
            return []

        # Every candidate is judged against the same minimum
        minimum_credit_score = self.credit_policy.minimum_credit_score
        ranking = TopKRanking(k)
        for node in candidates:
            if self.is_eligible(node, minimum_credit_score):
                ranking.offer(self.score(location, node))

        ranked = ranking.entries()
        logger.debug(f"Selected {[entry.node_id for entry in ranked]} for {location}")
        return ranked

    def select_nodes(self, location: Location, candidates: Iterable[StorageNode], k: int) -> List[str]:
        """Return up to ``k`` node ids in descending composite score order."""
        return [entry.node_id for entry in self.rank(location, candidates, k)]
