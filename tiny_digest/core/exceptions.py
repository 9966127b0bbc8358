"""
Exceptions raised by tiny-digest.

Each error also derives from the built-in exception a caller would naturally
catch (ValueError for bad input, RuntimeError for misuse of an empty digest).
"""


class TinyDigestError(Exception):
    """Base class for all tiny-digest errors."""


class InvalidArgumentError(TinyDigestError, ValueError):
    """An argument is outside the domain accepted by the operation."""


class DataCorruptionError(TinyDigestError, ValueError):
    """A serialized digest could not be decoded."""


class InvalidStateError(TinyDigestError, RuntimeError):
    """The operation is not valid for the digest's current state."""
