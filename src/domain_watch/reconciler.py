"""
History Reconciler for the domain watch system.

Turns successive scan snapshots into a durable change history. For every
record of a new snapshot the derived status (available / registered /
website) is compared with the last recorded status of that domain; a
difference, including a domain seen for the first time, appends a
HistoryEvent. The last recorded status is updated for every domain, and
events older than the retention window are pruned afterwards.

Events are appended in snapshot order and never reordered.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from .enums import DomainStatus, LogLevel
from .models import (
    DomainLastState,
    HistoryEvent,
    HistoryLog,
    ScanSnapshot,
    derive_status,
    utc_now,
)
from .scan_logger import ScanLogger


DEFAULT_RETENTION_DAYS = 365


@dataclass
class ReconcileResult:
    """Updated history plus the events added by this reconciliation."""

    history: HistoryLog
    new_event_count: int
    new_events: list[HistoryEvent] = field(default_factory=list)


class HistoryReconciler:
    """
    Sole writer of the history log.

    The prior history passed in is never mutated; a new HistoryLog is
    returned.
    """

    COMPONENT = "HistoryReconciler"

    def __init__(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        logger: Optional[ScanLogger] = None,
    ) -> None:
        self._retention = timedelta(days=retention_days)
        self._logger = logger

    @property
    def retention(self) -> timedelta:
        return self._retention

    def reconcile(
        self,
        snapshot: ScanSnapshot,
        prior: Optional[HistoryLog] = None,
        now: Optional[datetime] = None,
    ) -> ReconcileResult:
        """
        Fold a snapshot into the history.

        Args:
            snapshot: The scan snapshot of this run
            prior: Previously persisted history (None is an empty history)
            now: Run time, defaults to the current UTC time

        Returns:
            ReconcileResult with the updated history and new events
        """
        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        prior = prior or HistoryLog.empty()

        events = list(prior.events)
        last_state = dict(prior.last_state)
        new_events: list[HistoryEvent] = []

        for record in snapshot.domains:
            status = derive_status(record)
            previous = last_state.get(record.domain)
            previous_status = previous.status if previous else None

            if status != previous_status:
                event = HistoryEvent(
                    date=now,
                    domain=record.domain,
                    status=status,
                    previous_status=previous_status,
                )
                events.append(event)
                new_events.append(event)
                self._log(
                    LogLevel.INFO,
                    f"Status change for {record.domain}: "
                    f"{previous_status.value if previous_status else 'none'} -> {status.value}",
                    {"domain": record.domain, "status": status.value},
                )

            last_state[record.domain] = DomainLastState(status=status)

        kept = self.prune(events, now)
        pruned = len(events) - len(kept)
        if pruned:
            self._log(
                LogLevel.DEBUG,
                f"Pruned {pruned} history event(s) older than {self._retention.days} days",
                {"pruned": pruned},
            )

        return ReconcileResult(
            history=HistoryLog(events=kept, last_state=last_state),
            new_event_count=len(new_events),
            new_events=new_events,
        )

    def prune(self, events: list[HistoryEvent], now: datetime) -> list[HistoryEvent]:
        """Keep events dated at or after ``now - retention``, in order."""
        cutoff = now - self._retention
        return [event for event in events if event.date >= cutoff]

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)


def status_counts(history: HistoryLog) -> dict[DomainStatus, int]:
    """Number of domains per last recorded status."""
    counts = {status: 0 for status in DomainStatus}
    for state in history.last_state.values():
        counts[state.status] += 1
    return counts
