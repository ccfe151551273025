"""
Custom Exceptions Module

This module defines the exception hierarchy for the E3DAS pipeline,
providing specific error types for the codec, the impulse-response
store, the convolution engine and the mixer.
"""

class E3DASError(Exception):
    """Base exception class for all E3DAS errors."""
    pass


class MissingResourceError(E3DASError):
    """A required directory or file does not exist."""
    pass


class MalformedInputError(E3DASError):
    """Input data (WAV bytes, IR csv files) cannot be parsed."""
    pass


class InvalidArgumentError(E3DASError, ValueError):
    """A caller supplied a parameter outside its valid domain."""
    pass


class InvalidStateError(E3DASError):
    """An operation was attempted on a buffer that has not been populated."""
    pass
