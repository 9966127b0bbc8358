"""
Algorithm implementations for tiny-digest.
"""

from tiny_digest.algorithms.centroid_index import Centroid, CentroidIndex
from tiny_digest.algorithms.quantile_sketch import TDigest

__all__ = [
    "TDigest",
    "Centroid",
    "CentroidIndex",
]
