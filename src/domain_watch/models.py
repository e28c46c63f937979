"""
Data models for the domain watch system.

This module defines the scan snapshot, the per-domain records it holds,
and the history log derived from repeated snapshots. Every model converts
to and from the camelCase JSON documents read by the dashboard.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import DomainStatus


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as ISO-8601, assuming UTC for naive values."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing ``Z`` as written by JavaScript's ``toISOString``.
    Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 string
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def derive_tld(domain: str) -> str:
    """Substring after the last dot, lower-cased ('' without a dot)."""
    if "." not in domain:
        return ""
    return domain.rsplit(".", 1)[-1].lower()


@dataclass
class WebsiteProbeResult:
    """Outcome of probing a domain for a reachable website."""

    present: bool = False
    protocol: Optional[str] = None  # 'https' or 'http'
    status_code: Optional[int] = None
    url_tried: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def absent(cls) -> "WebsiteProbeResult":
        """Default value for domains that were never probed."""
        return cls(present=False)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"present": self.present}
        if self.protocol is not None:
            data["protocol"] = self.protocol
        if self.status_code is not None:
            data["status"] = self.status_code
        if self.url_tried is not None:
            data["urlTried"] = self.url_tried
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "WebsiteProbeResult":
        status = data.get("status", data.get("statusCode"))
        return cls(
            present=bool(data.get("present", False)),
            protocol=data.get("protocol"),
            status_code=int(status) if status is not None else None,
            url_tried=data.get("urlTried"),
            error=data.get("error"),
        )


@dataclass
class DomainRecord:
    """Result of one scan for one configured domain."""

    domain: str
    tld: str
    registered: bool
    website: WebsiteProbeResult
    checked_at: datetime

    @property
    def status(self) -> DomainStatus:
        return derive_status(self)

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "tld": self.tld,
            "registered": self.registered,
            "website": self.website.to_dict(),
            "checkedAt": format_timestamp(self.checked_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainRecord":
        domain = data["domain"]
        return cls(
            domain=domain,
            tld=data.get("tld") or derive_tld(domain),
            registered=bool(data.get("registered", False)),
            website=WebsiteProbeResult.from_dict(data.get("website") or {}),
            checked_at=parse_timestamp(data["checkedAt"]),
        )


@dataclass
class ScanSnapshot:
    """Full current-state document of all domains as of the latest scan."""

    scanned_at: datetime
    domains: list[DomainRecord] = field(default_factory=list)

    @classmethod
    def empty(cls, now: Optional[datetime] = None) -> "ScanSnapshot":
        return cls(scanned_at=now or utc_now(), domains=[])

    def to_dict(self) -> dict:
        return {
            "scannedAt": format_timestamp(self.scanned_at),
            "domains": [record.to_dict() for record in self.domains],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScanSnapshot":
        return cls(
            scanned_at=parse_timestamp(data["scannedAt"]),
            domains=[DomainRecord.from_dict(item) for item in data.get("domains", [])],
        )


@dataclass
class HistoryEvent:
    """A recorded status transition of one domain."""

    date: datetime
    domain: str
    status: DomainStatus
    previous_status: Optional[DomainStatus] = None

    def to_dict(self) -> dict:
        return {
            "date": format_timestamp(self.date),
            "domain": self.domain,
            "status": self.status.value,
            "previousStatus": self.previous_status.value if self.previous_status else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEvent":
        previous = data.get("previousStatus")
        return cls(
            date=parse_timestamp(data["date"]),
            domain=data["domain"],
            status=DomainStatus(data["status"]),
            previous_status=DomainStatus(previous) if previous is not None else None,
        )


@dataclass
class DomainLastState:
    """Last recorded status of a domain."""

    status: DomainStatus

    def to_dict(self) -> dict:
        return {"status": self.status.value}

    @classmethod
    def from_dict(cls, data: dict) -> "DomainLastState":
        return cls(status=DomainStatus(data["status"]))


@dataclass
class HistoryLog:
    """Pruned event record plus the last known status per domain."""

    events: list[HistoryEvent] = field(default_factory=list)
    last_state: dict[str, DomainLastState] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "HistoryLog":
        return cls(events=[], last_state={})

    def to_dict(self) -> dict:
        return {
            "events": [event.to_dict() for event in self.events],
            "lastState": {
                domain: state.to_dict() for domain, state in self.last_state.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryLog":
        """
        Build a history log from its JSON form.

        Raises:
            ValueError: If the document structure is invalid
        """
        if not isinstance(data, dict):
            raise ValueError("History document must be an object")
        raw_events = data.get("events", [])
        raw_state = data.get("lastState", {})
        if not isinstance(raw_events, list) or not isinstance(raw_state, dict):
            raise ValueError("History document has invalid 'events' or 'lastState'")
        try:
            events = [HistoryEvent.from_dict(item) for item in raw_events]
            last_state = {
                str(domain): DomainLastState.from_dict(state)
                for domain, state in raw_state.items()
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"History document is malformed: {e}") from e
        return cls(events=events, last_state=last_state)


def derive_status(record: DomainRecord) -> DomainStatus:
    """Classify a domain record into available / registered / website."""
    if not record.registered:
        return DomainStatus.AVAILABLE
    if record.website.present:
        return DomainStatus.WEBSITE
    return DomainStatus.REGISTERED
