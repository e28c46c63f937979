"""
Enumeration types for the domain watch system.

These enums provide type-safe constants for derived statuses, probe
outcomes, and configuration options throughout the system.
"""

from enum import Enum


class DomainStatus(Enum):
    """
    Derived status of a domain after a scan.

    Ordered: available < registered < website.
    """

    AVAILABLE = "available"
    REGISTERED = "registered"
    WEBSITE = "website"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def __lt__(self, other: "DomainStatus") -> bool:
        if not isinstance(other, DomainStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "DomainStatus") -> bool:
        if not isinstance(other, DomainStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "DomainStatus") -> bool:
        if not isinstance(other, DomainStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "DomainStatus") -> bool:
        if not isinstance(other, DomainStatus):
            return NotImplemented
        return self.rank >= other.rank


_STATUS_ORDER = (DomainStatus.AVAILABLE, DomainStatus.REGISTERED, DomainStatus.WEBSITE)


class RegistrationOutcome(Enum):
    """Interpretation of a single RDAP lookup response."""

    REGISTERED = "registered"
    NOT_REGISTERED = "not_registered"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class Scheme(Enum):
    """URL schemes tried by the website prober, in probing order."""

    HTTPS = "https"
    HTTP = "http"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
