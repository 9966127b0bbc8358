"""
tiny-digest - Streaming Quantile Estimation

tiny-digest is a Python library for estimating quantiles of data streams too
large to buffer and sort, using the t-digest: a bounded-memory set of weighted
centroids that is most precise near the tails of the distribution.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_digest.algorithms.quantile_sketch import TDigest
from tiny_digest.core.base import QuantileEstimator, StreamSummary
from tiny_digest.core.config import TDigestConfig
from tiny_digest.core.exceptions import (
    DataCorruptionError,
    InvalidArgumentError,
    InvalidStateError,
    TinyDigestError,
)

# Library code never configures logging; applications attach handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "QuantileEstimator",
    # Algorithm implementations
    "TDigest",
    "TDigestConfig",
    # Errors
    "TinyDigestError",
    "InvalidArgumentError",
    "DataCorruptionError",
    "InvalidStateError",
]
