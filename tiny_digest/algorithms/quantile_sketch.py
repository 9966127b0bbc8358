# tiny_digest/algorithms/quantile_sketch.py

import logging
import math
import random
import struct
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from tiny_digest.algorithms.centroid_index import Centroid, CentroidIndex
from tiny_digest.core.base import QuantileEstimator
from tiny_digest.core.config import (
    DEFAULT_ACCURACY as _DEFAULT_ACCURACY,
    DEFAULT_COMPRESSION_CONSTANT as _DEFAULT_COMPRESSION_CONSTANT,
    MIN_COMPRESSION_CONSTANT as _MIN_COMPRESSION_CONSTANT,
    TDigestConfig,
    is_real,
)
from tiny_digest.core.exceptions import (
    DataCorruptionError,
    InvalidArgumentError,
    InvalidStateError,
)

logger = logging.getLogger(__name__)

# Type variable for the class itself (for from_dict / from_bytes)
TDigestType = TypeVar("TDigestType", bound="TDigest")

# Binary layout: running mean, previous mean, accuracy, compression constant,
# min, max, then one (mean, count) pair per centroid. Little-endian doubles.
_HEADER = struct.Struct("<6d")
_CENTROID = struct.Struct("<2d")


class TDigest(QuantileEstimator):
    """
    T-Digest for accurate quantile estimation over data streams.

    The t-digest (Dunning & Ertl) clusters observations into weighted
    centroids. How much weight a centroid may hold depends on where it sits in
    the distribution: the bound 4 * N * accuracy * q * (1 - q) is tight near
    q = 0 and q = 1 and loose around the median, so tails keep fine resolution
    while the middle is summarized coarsely. Key properties:

    1. Memory is bounded by compression_constant / accuracy centroids
    2. Accuracy is non-uniform: extreme quantiles are the most precise
    3. min, max and the arithmetic mean are tracked exactly
    4. Mergeable: digests built from separate streams can be combined

    Incoming values are absorbed by the nearest centroid when its bound allows
    it, ties being broken at random, and otherwise start a new centroid. When
    the centroid count exceeds its limit the digest recompresses itself by
    re-ingesting its own centroids in random order.

    A digest is not thread-safe. Every instance owns its random source, so
    separate digests can be built concurrently and merged afterwards.
    """

    DEFAULT_ACCURACY: float = _DEFAULT_ACCURACY
    DEFAULT_COMPRESSION_CONSTANT: float = _DEFAULT_COMPRESSION_CONSTANT
    MIN_COMPRESSION_CONSTANT: float = _MIN_COMPRESSION_CONSTANT

    def __init__(
        self,
        accuracy: float = DEFAULT_ACCURACY,
        compression_constant: float = DEFAULT_COMPRESSION_CONSTANT,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize an empty TDigest.

        Args:
            accuracy: Controls the trade-off between accuracy and memory.
                Lower values give better accuracy and more centroids; higher
                values give better performance. Must be > 0. Default: 0.05.
            compression_constant: Together with accuracy sets the maximum
                number of centroids kept, compression_constant / accuracy.
                Must be >= 15. Default: 25.
            seed: Optional seed for the digest's own random source.
            rng: Optional random.Random to use instead of a seeded one.

        Raises:
            InvalidArgumentError: If accuracy <= 0 or compression_constant < 15.
        """
        config = TDigestConfig(
            accuracy=accuracy, compression_constant=compression_constant
        )
        config.validate()

        self._accuracy: float = float(accuracy)
        self._compression_constant: float = float(compression_constant)
        self._random = rng if rng is not None else random.Random(seed)

        self._centroids = CentroidIndex()
        self._count: float = 0.0
        self._running_mean: float = 0.0
        self._previous_mean: float = 0.0
        self._min_val: Optional[float] = None
        self._max_val: Optional[float] = None

    @classmethod
    def from_config(
        cls: Type[TDigestType],
        config: TDigestConfig,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> TDigestType:
        """Create an empty digest from a TDigestConfig."""
        return cls(
            accuracy=config.accuracy,
            compression_constant=config.compression_constant,
            seed=seed,
            rng=rng,
        )

    #
    # Accessors
    #
    @property
    def count(self) -> float:
        """Total weight added so far, kept equal to the sum of centroid counts."""
        return self._count

    @property
    def centroid_count(self) -> int:
        return len(self._centroids)

    @property
    def accuracy(self) -> float:
        return self._accuracy

    @property
    def compression_constant(self) -> float:
        return self._compression_constant

    @property
    def max_centroids(self) -> float:
        """Centroid count above which the digest recompresses itself."""
        return self._compression_constant / self._accuracy

    @property
    def average(self) -> Optional[float]:
        """Exact weighted mean of everything added, or None when empty."""
        return self._running_mean if not self.is_empty else None

    @property
    def min(self) -> Optional[float]:
        """Smallest value added, or None when empty."""
        return self._min_val

    @property
    def max(self) -> Optional[float]:
        """Largest value added, or None when empty."""
        return self._max_val

    @property
    def is_empty(self) -> bool:
        """Check if the digest contains any data."""
        return self._count == 0

    def __len__(self) -> int:
        """Return the number of centroids."""
        return len(self._centroids)

    def __repr__(self) -> str:
        return (
            f"TDigest(accuracy={self._accuracy:g}, "
            f"compression_constant={self._compression_constant:g}, "
            f"count={self._count:g}, centroids={len(self._centroids)})"
        )

    def get_distribution(self) -> List[Tuple[float, float]]:
        """
        Return the centroids as (value, count) pairs in ascending order.

        Intended for plotting the approximated distribution.
        """
        return self._centroids.pairs()

    #
    # Ingestion
    #
    def update(self, item: float, weight: float = 1.0) -> None:
        """Alias of add() for the StreamSummary interface."""
        self.add(item, weight)

    def add(self, value: float, weight: float = 1.0) -> None:
        """
        Add a value to the digest.

        Args:
            value: Finite numeric value to add.
            weight: Relative weight of the value. Must be > 0. Default: 1.

        Raises:
            InvalidArgumentError: If value is not a finite number or weight
                is not a positive finite number. The digest is unchanged.
        """
        value, weight = _check_observation(value, weight)

        self._record(value, weight)
        self._ingest(self._centroids, self._count, value, weight)
        # count always equals the sum of the centroid counts
        self._count = self._centroids.total_weight()

        if len(self._centroids) > self.max_centroids:
            self.compress()

    def _record(self, value: float, weight: float) -> None:
        """Update count, running mean and extremes for a validated value."""
        first = self._count == 0
        self._count += weight

        if first:
            self._running_mean = value
            self._previous_mean = value
            self._min_val = value
            self._max_val = value
            return

        self._previous_mean = self._running_mean
        self._running_mean = (
            self._previous_mean + weight * (value - self._previous_mean) / self._count
        )
        if value < self._min_val:
            self._min_val = value
        if value > self._max_val:
            self._max_val = value

    def _ingest(
        self, index: CentroidIndex, total: float, value: float, weight: float
    ) -> None:
        """
        Place weight at value into index, whose centroids sum to total
        once this weight is included.
        """
        if not len(index):
            index.insert(Centroid(value, weight))
            return

        candidates = []
        for centroid in _closest_centroids(index, value):
            q = (centroid.count / 2.0 + index.weight_below(centroid.mean)) / total
            threshold = self._threshold(total, q)
            if centroid.count + weight < threshold:
                candidates.append((centroid, threshold))

        while candidates and weight > 0:
            centroid, threshold = candidates.pop(
                self._random.randrange(len(candidates))
            )
            delta = min(threshold - centroid.count, weight)
            new_count = centroid.count + delta
            new_mean = centroid.mean + delta * (value - centroid.mean) / new_count
            index.reposition(centroid, new_mean, new_count)
            weight -= delta

        if weight > 0:
            existing = index.get(value)
            if existing is not None:
                existing.count += weight
            else:
                index.insert(Centroid(value, weight))

    def _threshold(self, total: float, q: float) -> float:
        """Largest weight a centroid at quantile q may hold."""
        return 4.0 * total * self._accuracy * q * (1.0 - q)

    #
    # Compression
    #
    def compress(self) -> None:
        """
        Re-ingest all centroids in random order to tighten the digest.

        count, min, max and the running mean are unchanged. A single call is
        not guaranteed to reduce the number of centroids.
        """
        before = len(self._centroids)
        if before == 0:
            return

        pairs = self._centroids.pairs()
        self._random.shuffle(pairs)

        rebuilt = CentroidIndex()
        total = 0.0
        for mean, count in pairs:
            total += count
            self._ingest(rebuilt, total, mean, count)

        self._centroids = rebuilt
        self._count = rebuilt.total_weight()
        logger.debug(
            "Compressed t-digest from %d to %d centroids (limit %g)",
            before,
            len(rebuilt),
            self.max_centroids,
        )

    #
    # Quantile estimation
    #
    def quantile(self, q: float) -> float:
        """
        Estimate the value at the given quantile.

        Args:
            q: Target quantile between 0.0 and 1.0. Values within one unit of
               weight from either end return the exact min or max.

        Returns:
            Estimated value at the quantile, always within [min, max].

        Raises:
            InvalidArgumentError: If q is not between 0.0 and 1.0.
            InvalidStateError: If no value has been added.
        """
        if not isinstance(q, (int, float)) or not (0.0 <= q <= 1.0):
            raise InvalidArgumentError("Quantile must be between 0.0 and 1.0")
        if self.is_empty:
            raise InvalidStateError(
                "Cannot estimate a quantile before any value has been added"
            )

        centroids = list(self._centroids)
        if len(centroids) == 1:
            return centroids[0].mean

        total = self._count
        index = q * total
        if index < 1:
            return self._min_val
        if index > total - 1:
            return self._max_val

        first = centroids[0]
        last = centroids[-1]

        # A weight-2 end centroid holds the extreme plus one hidden sample,
        # which sits at the mirror image of the extreme around the mean.
        if first.count == 2 and index <= 2:
            return min(2 * first.mean - self._min_val, self._max_val)
        if last.count == 2 and index >= total - 2:
            return max(2 * last.mean - self._max_val, self._min_val)

        if first.count > 2 and index < first.count / 2:
            # one sample sits exactly at min
            half = first.count / 2
            return self._min_val + (index - 1) / (half - 1) * (
                first.mean - self._min_val
            )

        weight_so_far = first.count / 2
        for current, following in zip(centroids, centroids[1:]):
            dw = (current.count + following.count) / 2
            if index < weight_so_far + dw:
                left_unit = 0.0
                if current.count == 1:
                    if index < weight_so_far + 0.5:
                        return current.mean
                    left_unit = 0.5

                right_unit = 0.0
                if following.count == 1:
                    if index >= weight_so_far + dw - 0.5:
                        return following.mean
                    right_unit = 0.5

                following_weight = index - weight_so_far - left_unit
                current_weight = weight_so_far + dw - index - right_unit
                return _weighted_average(
                    current.mean, current_weight, following.mean, following_weight
                )
            weight_so_far += dw

        # Between the last centroid's midpoint and the single sample at max
        return _weighted_average(
            last.mean, (total - 1) - index, self._max_val, index - weight_so_far
        )

    #
    # Merging
    #
    def merge(self: TDigestType, other: TDigestType) -> TDigestType:
        """
        Merge this digest with another TDigest.

        Creates a new digest representing the combined data. Neither input is
        modified. See merge_digests().

        Raises:
            TypeError: If 'other' is not a TDigest.
        """
        self._check_same_type(other)
        return type(self).merge_digests(self, other)

    @classmethod
    def merge_digests(
        cls: Type[TDigestType],
        a: "TDigest",
        b: "TDigest",
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> TDigestType:
        """
        Build one digest approximating the union of two digests.

        The centroids of both inputs are replayed, in random order, as weighted
        observations into a new digest with default parameters. The result's
        count is a.count + b.count, its average is the count-weighted average
        of the inputs, and its min/max are the extremes of both inputs.

        Args:
            a: First digest.
            b: Second digest.
            seed: Optional seed for the merged digest's random source.
            rng: Optional random.Random for the merged digest.

        Raises:
            TypeError: If either input is not a TDigest.
        """
        for digest in (a, b):
            if not isinstance(digest, TDigest):
                raise TypeError(f"Cannot merge with {digest.__class__.__name__}")

        merged = cls(seed=seed, rng=rng)

        pairs = a._centroids.pairs() + b._centroids.pairs()
        merged._random.shuffle(pairs)
        for mean, count in pairs:
            merged.add(mean, count)

        total = a._count + b._count
        if total > 0:
            merged._running_mean = (
                a._running_mean * a._count + b._running_mean * b._count
            ) / total
            merged._previous_mean = (
                a._previous_mean * a._count + b._previous_mean * b._count
            ) / total

        minimums = [d._min_val for d in (a, b) if d._min_val is not None]
        maximums = [d._max_val for d in (a, b) if d._max_val is not None]
        merged._min_val = min(minimums) if minimums else None
        merged._max_val = max(maximums) if maximums else None

        logger.debug(
            "Merged t-digests (%d + %d centroids, count %g + %g) into %d centroids",
            len(a._centroids),
            len(b._centroids),
            a._count,
            b._count,
            len(merged._centroids),
        )
        return merged

    #
    # Serialization
    #
    def serialize(self, format: str = "binary") -> Union[str, bytes]:
        """
        Serialize the digest.

        Args:
            format: 'binary' (default) for the compact byte layout written by
                to_bytes(), or 'json'.
        """
        return super().serialize(format)

    @classmethod
    def deserialize(
        cls: Type[TDigestType], data: Union[str, bytes], format: str = "binary"
    ) -> TDigestType:
        """Inverse of serialize()."""
        return super().deserialize(data, format)

    def to_bytes(self) -> bytes:
        """
        Encode the digest in its compact binary form.

        The layout is a 48-byte header of little-endian doubles (running mean,
        previous mean, accuracy, compression constant, min, max) followed by
        16 bytes per centroid (mean, count) in ascending order. An empty
        digest stores NaN for min and max.
        """
        header = _HEADER.pack(
            self._running_mean,
            self._previous_mean,
            self._accuracy,
            self._compression_constant,
            _or_nan(self._min_val),
            _or_nan(self._max_val),
        )
        body = b"".join(
            _CENTROID.pack(mean, count) for mean, count in self._centroids.pairs()
        )
        return header + body

    @classmethod
    def from_bytes(cls: Type[TDigestType], data: bytes) -> TDigestType:
        """
        Reconstruct a digest written by to_bytes().

        Centroids are copied as-is, so the result answers every query exactly
        like the digest that was serialized.

        Raises:
            InvalidArgumentError: If data is None or not bytes-like.
            DataCorruptionError: If the buffer is malformed.
        """
        if data is None:
            raise InvalidArgumentError("Serialized digest cannot be None")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                f"Serialized digest must be bytes-like, got {type(data).__name__}"
            )

        data = bytes(data)
        if len(data) < _HEADER.size or (len(data) - _HEADER.size) % _CENTROID.size:
            raise DataCorruptionError(
                f"Invalid serialized digest length {len(data)}: expected a "
                f"{_HEADER.size}-byte header followed by {_CENTROID.size}-byte centroids"
            )

        (
            running_mean,
            previous_mean,
            accuracy,
            compression_constant,
            min_val,
            max_val,
        ) = _HEADER.unpack_from(data, 0)

        try:
            digest = cls(accuracy=accuracy, compression_constant=compression_constant)
        except InvalidArgumentError as e:
            raise DataCorruptionError(f"Invalid digest parameters: {e}") from e

        pairs = list(_CENTROID.iter_unpack(data[_HEADER.size :]))
        digest._restore(running_mean, previous_mean, min_val, max_val, pairs)

        logger.debug(
            "Decoded t-digest with %d centroids from %d bytes", len(pairs), len(data)
        )
        return digest

    def _restore(
        self,
        running_mean: float,
        previous_mean: float,
        min_val: Optional[float],
        max_val: Optional[float],
        pairs: List[Tuple[float, float]],
    ) -> None:
        """
        Load decoded state into an empty digest.

        Raises:
            DataCorruptionError: If the centroids or extremes are inconsistent.
        """
        for name, field in (
            ("running_mean", running_mean),
            ("previous_mean", previous_mean),
        ):
            if not isinstance(field, (int, float)) or not math.isfinite(field):
                raise DataCorruptionError(f"Invalid {name}: {field!r}")

        previous = None
        for mean, count in pairs:
            if not math.isfinite(mean) or not math.isfinite(count) or count <= 0:
                raise DataCorruptionError(
                    f"Invalid centroid (mean={mean}, count={count})"
                )
            if previous is not None and mean <= previous:
                raise DataCorruptionError(
                    "Centroids are not in strictly ascending order of mean"
                )
            self._centroids.insert(Centroid(mean, count))
            previous = mean

        self._count = self._centroids.total_weight()
        self._running_mean = float(running_mean)
        self._previous_mean = float(previous_mean)

        if self._count == 0:
            self._min_val = None
            self._max_val = None
            return

        if (
            min_val is None
            or max_val is None
            or not math.isfinite(min_val)
            or not math.isfinite(max_val)
            or min_val > max_val
        ):
            raise DataCorruptionError(f"Invalid extremes (min={min_val}, max={max_val})")
        self._min_val = float(min_val)
        self._max_val = float(max_val)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the digest to a dictionary.

        Returns:
            Dictionary containing the digest configuration and internal state.
        """
        state = self._base_dict()
        state.update(
            {
                "accuracy": self._accuracy,
                "compression_constant": self._compression_constant,
                "count": self._count,
                "running_mean": self._running_mean,
                "previous_mean": self._previous_mean,
                "min_val": self._min_val,
                "max_val": self._max_val,
                "centroids": [c.to_dict() for c in self._centroids],
            }
        )
        return state

    @classmethod
    def from_dict(cls: Type[TDigestType], data: Dict[str, Any]) -> TDigestType:
        """
        Deserialize a digest from a dictionary representation.

        Args:
            data: Dictionary created by to_dict().

        Raises:
            DataCorruptionError: If the dictionary is missing required keys or
                holds invalid data.
        """
        cls._check_dict_type(data)

        required_keys = {
            "accuracy",
            "compression_constant",
            "running_mean",
            "previous_mean",
            "centroids",
        }
        missing_keys = required_keys - data.keys()
        if missing_keys:
            raise DataCorruptionError(
                f"Invalid dictionary format for TDigest. Missing keys: {missing_keys}"
            )

        try:
            instance = cls(
                accuracy=data["accuracy"],
                compression_constant=data["compression_constant"],
            )
            pairs = [
                (c.mean, c.count)
                for c in (Centroid.from_dict(c_data) for c_data in data["centroids"])
            ]
        except (ValueError, KeyError, TypeError) as e:
            raise DataCorruptionError(f"Error deserializing TDigest: {e}") from e

        instance._restore(
            data["running_mean"],
            data["previous_mean"],
            data.get("min_val"),
            data.get("max_val"),
            pairs,
        )

        if "count" in data and not math.isclose(
            data["count"], instance._count, rel_tol=1e-9, abs_tol=1e-9
        ):
            raise DataCorruptionError(
                f"Stored count {data['count']} does not match centroid total {instance._count}"
            )
        return instance

    #
    # Benchmarking hooks
    #
    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the digest in bytes.
        """
        size = super().estimate_size()

        size += self._centroids.estimate_size()
        return size

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the digest.

        Returns:
            A dictionary with configuration, structure and centroid statistics.
        """
        stats = super().get_stats()

        stats.update(
            {
                "accuracy": self._accuracy,
                "compression_constant": self._compression_constant,
                "max_centroids": self.max_centroids,
                "num_centroids": len(self._centroids),
                "centroid_utilization": len(self._centroids) / self.max_centroids,
            }
        )

        if self.is_empty:
            return stats

        stats.update(
            {
                "min_value": self._min_val,
                "max_value": self._max_val,
                "average": self._running_mean,
            }
        )

        weights = [c.count for c in self._centroids]
        stats.update(
            {
                "min_weight": min(weights),
                "max_weight": max(weights),
                "avg_weight": sum(weights) / len(weights),
                "total_centroid_weight": sum(weights),
                "compression_ratio": self._count / len(weights),
            }
        )

        # Are the centroids concentrated in the tails?
        means = [c.mean for c in self._centroids]
        if len(means) > 2:
            low, high = means[0], means[-1]
            span = high - low
            lower_tail = sum(1 for m in means if m < low + 0.1 * span)
            upper_tail = sum(1 for m in means if m > high - 0.1 * span)
            middle = len(means) - lower_tail - upper_tail
            stats.update(
                {
                    "centroid_span": span,
                    "centroids_lower_10pct": lower_tail,
                    "centroids_middle_80pct": middle,
                    "centroids_upper_10pct": upper_tail,
                    "tail_concentration_ratio": (lower_tail + upper_tail)
                    / max(1, middle),
                }
            )

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Describe the digest's non-uniform error.

        A centroid at quantile q holds at most a 4 * accuracy * q * (1 - q)
        fraction of the total weight, which bounds the rank error of estimates
        near q.
        """
        if self.is_empty:
            return {"state": "empty"}

        quantiles = [0.001, 0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99, 0.999]
        return {
            "accuracy_model": "non-uniform (higher at tails)",
            "theoretical_max_centroids": self.max_centroids,
            "actual_centroids": len(self._centroids),
            "error_bounds": {
                f"q{q:.3f}": 4.0 * self._accuracy * q * (1.0 - q) for q in quantiles
            },
        }

    def clear(self) -> None:
        """
        Reset the digest to its initial empty state.

        Configuration and the random source are preserved.
        """
        self._centroids = CentroidIndex()
        self._count = 0.0
        self._running_mean = 0.0
        self._previous_mean = 0.0
        self._min_val = None
        self._max_val = None


def _check_observation(value: Any, weight: Any) -> Tuple[float, float]:
    if not is_real(value) or not math.isfinite(value):
        raise InvalidArgumentError(f"Value must be a finite number, got {value!r}")
    if not is_real(weight) or not math.isfinite(weight):
        raise InvalidArgumentError(f"Weight must be a finite number, got {weight!r}")
    if weight <= 0:
        raise InvalidArgumentError(f"Weight must be greater than 0, got {weight}")
    return float(value), float(weight)


def _closest_centroids(index: CentroidIndex, value: float) -> List[Centroid]:
    """The centroid nearest value, or both neighbours when equidistant."""
    successor = index.successor(value)
    predecessor = index.predecessor(value)

    if successor is None or predecessor is None:
        return [c for c in (successor, predecessor) if c is not None]
    if successor is predecessor:
        return [successor]

    above = successor.mean - value
    below = value - predecessor.mean
    if above < below:
        return [successor]
    if below < above:
        return [predecessor]
    return [successor, predecessor]


def _weighted_average(x1: float, w1: float, x2: float, w2: float) -> float:
    """Weighted average of two points, clamped to lie between them."""
    low, high = (x1, x2) if x1 <= x2 else (x2, x1)
    if w1 + w2 <= 0:
        return x1
    return max(low, min(high, (x1 * w1 + x2 * w2) / (w1 + w2)))


def _or_nan(value: Optional[float]) -> float:
    return float("nan") if value is None else value
