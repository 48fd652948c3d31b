"""
Error Types

Exceptions raised by the language models and the evaluation harness.
"""

from typing import Optional, Tuple


class NGramError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(NGramError, ValueError):
    """A smoothing or backoff parameter is invalid. Raised at construction time."""


class ComputationError(NGramError, ArithmeticError):
    """
    A computation produced an undefined or out-of-range value.

    Attributes:
        ngram: The n-gram being scored when the error occurred, if any
        value: The offending value, if any
    """

    def __init__(self, message: str, ngram: Optional[Tuple[str, ...]] = None,
                 value: Optional[float] = None):
        super().__init__(message)
        self.ngram = ngram
        self.value = value


class DataError(NGramError, IOError):
    """Input data is missing or malformed."""
