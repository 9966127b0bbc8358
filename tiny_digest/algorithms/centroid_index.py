# tiny_digest/algorithms/centroid_index.py

"""
Ordered centroid storage for the t-digest.

Centroids are ordered by their mean, and a centroid's mean moves every time it
absorbs weight. The index therefore never mutates a key in place: callers go
through reposition(), which removes the centroid under its old key and
reinserts it under the new one.
"""

import bisect
import math
import sys
from typing import Dict, Iterator, List, Optional, Tuple

from tiny_digest.core.exceptions import InvalidArgumentError


class Centroid:
    """A cluster of absorbed observations summarized by mean and total weight."""

    __slots__ = ["mean", "count"]

    def __init__(self, mean: float, count: float = 1.0):
        if not count > 0:
            raise InvalidArgumentError(
                f"Centroid count must be greater than 0, got {count}"
            )
        self.mean = float(mean)
        self.count = float(count)

    def __lt__(self, other: "Centroid") -> bool:
        """Allow centroids to be sorted by mean value."""
        return self.mean < other.mean

    def __repr__(self) -> str:
        return f"Centroid(mean={self.mean:.4g}, count={self.count:.4g})"

    def to_dict(self) -> Dict[str, float]:
        return {"mean": self.mean, "count": self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Centroid":
        if "mean" not in data or "count" not in data:
            raise ValueError("Centroid dictionary missing 'mean' or 'count'")
        return cls(mean=data["mean"], count=data["count"])


class CentroidIndex:
    """
    Centroids kept in ascending order of mean, keyed by mean.

    Two parallel lists hold the state: the sorted keys, searched with bisect,
    and the centroid objects at the same positions. Keys are unique and always
    equal the mean of the centroid stored at that position.
    """

    def __init__(self) -> None:
        self._keys: List[float] = []
        self._centroids: List[Centroid] = []

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[Centroid]:
        """Iterate centroids in ascending order of mean."""
        return iter(list(self._centroids))

    def __contains__(self, mean: float) -> bool:
        return self._position(mean) is not None

    def __repr__(self) -> str:
        return f"CentroidIndex({self._centroids!r})"

    def _position(self, mean: float) -> Optional[int]:
        pos = bisect.bisect_left(self._keys, mean)
        if pos < len(self._keys) and self._keys[pos] == mean:
            return pos
        return None

    def get(self, mean: float) -> Optional[Centroid]:
        """Return the centroid stored exactly under mean, or None."""
        pos = self._position(mean)
        return None if pos is None else self._centroids[pos]

    def insert(self, centroid: Centroid) -> None:
        """
        Insert a centroid under its current mean.

        Raises:
            KeyError: If another centroid already has this mean.
        """
        pos = bisect.bisect_left(self._keys, centroid.mean)
        if pos < len(self._keys) and self._keys[pos] == centroid.mean:
            raise KeyError(centroid.mean)
        self._keys.insert(pos, centroid.mean)
        self._centroids.insert(pos, centroid)

    def remove(self, mean: float) -> Centroid:
        """
        Remove and return the centroid stored under mean.

        Raises:
            KeyError: If no centroid has this mean.
        """
        pos = self._position(mean)
        if pos is None:
            raise KeyError(mean)
        del self._keys[pos]
        return self._centroids.pop(pos)

    def reposition(self, centroid: Centroid, mean: float, count: float) -> Centroid:
        """
        Give an indexed centroid a new mean and count.

        If the new mean lands exactly on another centroid, the two are folded
        into that centroid and it is returned instead.

        Returns:
            The centroid now holding the weight.
        """
        removed = self.remove(centroid.mean)
        if removed is not centroid:
            # put it back before reporting the mismatch
            self.insert(removed)
            raise KeyError(f"{centroid!r} is not stored in this index")

        centroid.mean = float(mean)
        centroid.count = float(count)

        existing = self.get(centroid.mean)
        if existing is not None:
            existing.count += centroid.count
            return existing

        self.insert(centroid)
        return centroid

    def successor(self, x: float, inclusive: bool = True) -> Optional[Centroid]:
        """
        Nearest centroid with mean above x.

        Args:
            x: Probe value.
            inclusive: Also accept a centroid whose mean equals x.
        """
        if inclusive:
            pos = bisect.bisect_left(self._keys, x)
        else:
            pos = bisect.bisect_right(self._keys, x)
        return self._centroids[pos] if pos < len(self._keys) else None

    def predecessor(self, x: float, inclusive: bool = True) -> Optional[Centroid]:
        """
        Nearest centroid with mean below x.

        Args:
            x: Probe value.
            inclusive: Also accept a centroid whose mean equals x.
        """
        if inclusive:
            pos = bisect.bisect_right(self._keys, x) - 1
        else:
            pos = bisect.bisect_left(self._keys, x) - 1
        return self._centroids[pos] if pos >= 0 else None

    def weight_below(self, mean: float) -> float:
        """Sum of counts of all centroids with mean strictly below mean."""
        pos = bisect.bisect_left(self._keys, mean)
        return sum(c.count for c in self._centroids[:pos])

    def total_weight(self) -> float:
        """Correctly rounded sum of all centroid counts, independent of order."""
        return math.fsum(c.count for c in self._centroids)

    def estimate_size(self) -> int:
        """Approximate memory used by the index and its centroids, in bytes."""
        size = sys.getsizeof(self)
        size += sys.getsizeof(self._keys) + sys.getsizeof(self._centroids)
        for centroid in self._centroids:
            # key float, centroid object, and its mean and count floats
            size += sys.getsizeof(centroid) + 3 * sys.getsizeof(centroid.mean)
        return size

    def pairs(self) -> List[Tuple[float, float]]:
        """Snapshot of (mean, count) pairs in ascending order."""
        return [(c.mean, c.count) for c in self._centroids]
