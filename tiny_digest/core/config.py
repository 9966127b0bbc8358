"""
Construction parameters for digests.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

from tiny_digest.core.exceptions import InvalidArgumentError

DEFAULT_ACCURACY = 0.05
DEFAULT_COMPRESSION_CONSTANT = 25.0
MIN_COMPRESSION_CONSTANT = 15.0


@dataclass(frozen=True)
class TDigestConfig:
    """
    Accuracy/memory trade-off for a TDigest.

    Attributes:
        accuracy: Cluster size bound (delta). Smaller values keep more,
            tighter centroids.
        compression_constant: Together with accuracy sets the maximum
            tolerated centroid count, compression_constant / accuracy.
    """

    accuracy: float = DEFAULT_ACCURACY
    compression_constant: float = DEFAULT_COMPRESSION_CONSTANT

    def validate(self) -> None:
        """
        Check both parameters.

        Raises:
            InvalidArgumentError: If accuracy is not a positive finite number
                or compression_constant is below MIN_COMPRESSION_CONSTANT.
        """
        if not is_real(self.accuracy) or not math.isfinite(self.accuracy):
            raise InvalidArgumentError(
                f"Accuracy must be a finite number, got {self.accuracy!r}"
            )
        if self.accuracy <= 0:
            raise InvalidArgumentError(
                f"Accuracy must be greater than 0, got {self.accuracy}"
            )
        if (
            not is_real(self.compression_constant)
            or not math.isfinite(self.compression_constant)
            or self.compression_constant < MIN_COMPRESSION_CONSTANT
        ):
            raise InvalidArgumentError(
                f"Compression constant must be a finite number >= "
                f"{MIN_COMPRESSION_CONSTANT:g}, got {self.compression_constant!r}"
            )

    @property
    def max_centroids(self) -> float:
        """Centroid count above which a digest recompresses itself."""
        return self.compression_constant / self.accuracy

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_real(value: Any) -> bool:
    # bool is an int subclass but never a meaningful parameter
    return isinstance(value, (int, float)) and not isinstance(value, bool)
