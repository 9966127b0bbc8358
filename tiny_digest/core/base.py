"""
Base classes and interfaces for tiny-digest summaries.

This module defines the abstract interface shared by the library's streaming
summaries: updating with new items, querying, merging, serialization, and a
few introspection hooks used for tuning and benchmarking.
"""

import abc
import json
import sys
from typing import Any, Dict, Generic, Iterable, List, Protocol, TypeVar, Union

from tiny_digest.core.exceptions import DataCorruptionError, InvalidArgumentError

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class Serializable(Protocol):
    """Protocol defining methods for serialization and deserialization."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert the object to a dictionary representation."""
        ...

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Serializable":
        """Create an object from its dictionary representation."""
        ...


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming summaries.

    Subclasses implement updating with new items, querying results, merging
    with other summaries of the same type, and a dictionary form. Binary
    serialization defaults to UTF-8 encoded JSON; summaries with a compact
    wire format override to_bytes() and from_bytes().
    """

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Args:
            item: The new item to process.
        """

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.
        """

    @abc.abstractmethod
    def merge(self, other: "StreamSummary[T, R]") -> "StreamSummary[T, R]":
        """
        Merge this summary with another of the same type.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary.

        Raises:
            TypeError: If other is not of the same type.
        """

    def _check_same_type(self, other: Any) -> None:
        """
        Helper method to check if another summary is of the same type.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert the summary to a dictionary for serialization."""

    def _base_dict(self) -> Dict[str, Any]:
        """Attributes common to all summaries."""
        return {"type": self.__class__.__name__}

    @classmethod
    def _check_dict_type(cls, data: Dict[str, Any]) -> None:
        """
        Validate the 'type' tag written by _base_dict().

        Raises:
            DataCorruptionError: If the tag is missing or names another class.
        """
        if not isinstance(data, dict) or "type" not in data:
            raise DataCorruptionError(
                f"Invalid dictionary format for {cls.__name__}. Missing 'type'"
            )
        if data["type"] != cls.__name__:
            raise DataCorruptionError(
                f"Dictionary represents class '{data['type']}' but expected '{cls.__name__}'"
            )

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSummary[T, R]":
        """Create a summary from a dictionary representation."""

    def to_bytes(self) -> bytes:
        """Encode the summary in its binary form."""
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "StreamSummary[T, R]":
        """Decode a summary produced by to_bytes()."""
        try:
            return cls.from_dict(json.loads(bytes(data).decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DataCorruptionError(f"Cannot decode {cls.__name__}: {e}") from e

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: The serialization format ('json' or 'binary').

        Returns:
            A JSON string, or the bytes produced by to_bytes().

        Raises:
            InvalidArgumentError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return self.to_bytes()
        else:
            raise InvalidArgumentError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(
        cls, data: Union[str, bytes], format: str = "json"
    ) -> "StreamSummary[T, R]":
        """
        Deserialize a summary from a string or bytes.

        Args:
            data: The serialized summary.
            format: The serialization format ('json' or 'binary').

        Raises:
            InvalidArgumentError: If the format is not supported or data is None.
            DataCorruptionError: If the payload cannot be decoded.
        """
        if data is None:
            raise InvalidArgumentError("Cannot deserialize from None")
        if format == "json":
            try:
                if isinstance(data, (bytes, bytearray)):
                    data = bytes(data).decode("utf-8")
                payload = json.loads(data)
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise DataCorruptionError(f"Cannot decode {cls.__name__}: {e}") from e
            return cls.from_dict(payload)
        elif format == "binary":
            return cls.from_bytes(data)
        else:
            raise InvalidArgumentError(f"Unsupported serialization format: {format}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        This is a rough figure based on sys.getsizeof; subclasses add the
        size of their own containers.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        Derived classes extend the dictionary with their own figures and
        should call super().get_stats() to include the base ones.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "memory_bytes": self.estimate_size(),
        }

        error_bounds = self.error_bounds()
        if error_bounds:
            stats.update(error_bounds)

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the theoretical error bounds for this summary.

        The base implementation returns an empty dictionary.
        """
        return {}


class QuantileEstimator(StreamSummary[float, float], abc.ABC):
    """
    Abstract base class for quantile estimation over numeric streams.

    Examples include the t-digest.
    """

    @abc.abstractmethod
    def quantile(self, q: float) -> float:
        """
        Estimate the value below which a fraction q of the weight lies.

        Args:
            q: Target quantile in [0, 1].
        """

    def query(self, q: float) -> float:
        """Alias of quantile() for the StreamSummary interface."""
        return self.quantile(q)

    def quantiles(self, qs: Iterable[float]) -> List[float]:
        """Estimate several quantiles at once, in the order given."""
        return [self.quantile(q) for q in qs]

    @property
    @abc.abstractmethod
    def count(self) -> float:
        """Total weight absorbed so far."""

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats["count"] = self.count
        return stats
