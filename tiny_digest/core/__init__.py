"""
Core functionality for tiny-digest.
"""

from tiny_digest.core.base import QuantileEstimator, StreamSummary
from tiny_digest.core.config import TDigestConfig
from tiny_digest.core.exceptions import (
    DataCorruptionError,
    InvalidArgumentError,
    InvalidStateError,
    TinyDigestError,
)

__all__ = [
    # Base classes
    "StreamSummary",
    "QuantileEstimator",
    # Configuration
    "TDigestConfig",
    # Errors
    "TinyDigestError",
    "InvalidArgumentError",
    "DataCorruptionError",
    "InvalidStateError",
]
