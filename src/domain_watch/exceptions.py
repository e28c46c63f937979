"""
Exception classes for the domain watch system.

All exceptions inherit from DomainWatchError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DomainWatchError(Exception):
    """Base exception for all domain watch errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(DomainWatchError):
    """Raised when configuration values or files are invalid."""

    pass


class PersistenceError(DomainWatchError):
    """Raised when the snapshot or history document cannot be written."""

    pass


class ClassifierError(DomainWatchError):
    """Raised when the placeholder classifier cannot produce an answer."""

    pass
