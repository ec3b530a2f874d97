"""Placement settings and the process-wide credit policy."""
import threading
from dataclasses import dataclass

from . import base_config
from ..storage.errors import InvalidCreditScore


@dataclass
class PlacementConfig:
    """Tunables for node selection and batch tracking"""
    min_credit_score: int = 50
    replica_count: int = 3
    max_batch_size: int = 50
    recent_window_size: int = 1000
    max_valid_distance: int = 10 ** 14

    def __post_init__(self):
        if self.min_credit_score < 0:
            raise ValueError("min_credit_score must be non-negative")
        if self.replica_count <= 0:
            raise ValueError("replica_count must be positive")
        if self.max_batch_size <= 0:
            raise ValueError("max_batch_size must be positive")
        if self.recent_window_size <= 0:
            raise ValueError("recent_window_size must be positive")
        if self.max_valid_distance <= 0:
            raise ValueError("max_valid_distance must be positive")

    @classmethod
    def from_env(cls) -> 'PlacementConfig':
        """Build a config from the environment-backed module settings."""
        return cls(
            min_credit_score=base_config.MIN_CREDIT_SCORE,
            replica_count=base_config.REPLICA_COUNT,
            max_batch_size=base_config.MAX_BATCH_SIZE,
            recent_window_size=base_config.RECENT_WINDOW_SIZE,
            max_valid_distance=base_config.MAX_VALID_DISTANCE,
        )


class CreditPolicy:
    """Process-wide minimum credit score.

    Every registration and selection reads the current value at call time;
    nothing caches it across calls.
    """

    def __init__(self, minimum_credit_score: int = 50):
        self._lock = threading.Lock()
        self._minimum = self.check(minimum_credit_score)

    @staticmethod
    def check(score: int) -> int:
        """Validate a minimum credit score without applying it."""
        if isinstance(score, bool) or not isinstance(score, int) or score < 0:
            raise InvalidCreditScore(score)
        return score

    @property
    def minimum_credit_score(self) -> int:
        with self._lock:
            return self._minimum

    def set_minimum_credit_score(self, score: int) -> int:
        """Replace the minimum and return the previous value."""
        score = self.check(score)
        with self._lock:
            previous = self._minimum
            self._minimum = score
            return previous
