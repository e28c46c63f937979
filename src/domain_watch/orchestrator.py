"""
Scan Orchestrator for the domain watch system.

This module coordinates one scan run:
- registration lookup per domain via RDAP
- website probing for registered domains only
- a fixed pacing delay after every domain to bound the outbound request rate
- history reconciliation and persistence of both documents

Domains are probed strictly one after another. Every configured domain
yields exactly one DomainRecord per run, even when both probes failed.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

import httpx

from .classifier import PlaceholderClassifier
from .config import SystemConfig
from .enums import DomainStatus, LogLevel
from .models import (
    DomainRecord,
    HistoryEvent,
    ScanSnapshot,
    WebsiteProbeResult,
    derive_status,
    derive_tld,
    utc_now,
)
from .rdap_client import RDAPClient
from .reconciler import HistoryReconciler
from .scan_logger import ScanLogger
from .state_store import StateStore
from .website_prober import WebsiteProber


@dataclass
class ScanReport:
    """Outcome of a full scan run (scan, reconcile, persist)."""

    snapshot: ScanSnapshot
    new_events: list[HistoryEvent] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def new_event_count(self) -> int:
        return len(self.new_events)

    def count(self, status: DomainStatus) -> int:
        return sum(1 for record in self.snapshot.domains if derive_status(record) == status)


class ScanOrchestrator:
    """
    Main orchestrator for scan runs.

    Use as an async context manager so the probers' HTTP clients live
    exactly as long as the run. Pass ``client`` to share a single one.
    """

    COMPONENT = "ScanOrchestrator"

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        state_store: Optional[StateStore] = None,
        classifier: Optional[PlaceholderClassifier] = None,
        logger: Optional[ScanLogger] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the scan orchestrator.

        Args:
            config: System configuration
            state_store: Optional store; required only by :meth:`run`
            classifier: Optional placeholder page classifier
            logger: Optional scan logger
            client: Optional shared HTTP client (each prober creates its own otherwise)
        """
        self._config = config or SystemConfig()
        self._state_store = state_store
        self._logger = logger

        self._rdap_client = RDAPClient(
            config=self._config.registry,
            retry_config=self._config.retry,
            client=client,
            logger=logger,
        )
        self._website_prober = WebsiteProber(
            config=self._config.website,
            client=client,
            classifier=classifier,
            logger=logger,
        )
        self._reconciler = HistoryReconciler(
            retention_days=self._config.persistence.retention_days,
            logger=logger,
        )

    async def __aenter__(self) -> "ScanOrchestrator":
        """Async context manager entry."""
        await self._rdap_client.__aenter__()
        await self._website_prober.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self._website_prober.close()
        await self._rdap_client.close()

    async def check_domain(self, domain: str) -> DomainRecord:
        """Probe one domain and build its record."""
        tld = derive_tld(domain)
        registration = await self._rdap_client.check(domain)

        if registration.registered:
            website = await self._website_prober.probe(domain)
        else:
            website = WebsiteProbeResult.absent()

        record = DomainRecord(
            domain=domain,
            tld=tld,
            registered=registration.registered,
            website=website,
            checked_at=utc_now(),
        )

        self._log_info(
            f"{domain}: {derive_status(record).value}",
            {
                "domain": domain,
                "registered": record.registered,
                "rdap_status": registration.http_status_code,
                "rdap_attempts": registration.attempts,
                "website": website.to_dict(),
            },
        )
        return record

    async def run_scan(self, domains: Iterable[str]) -> ScanSnapshot:
        """
        Probe every domain in order and assemble a snapshot.

        Args:
            domains: Domain names in configured order

        Returns:
            ScanSnapshot with one record per domain, in input order
        """
        domain_list = list(domains)
        self._log_info(
            f"Starting scan of {len(domain_list)} domain(s)",
            {"domains": len(domain_list), "pacing_seconds": self._config.scan.pacing_seconds},
        )

        records: list[DomainRecord] = []
        for domain in domain_list:
            records.append(await self.check_domain(domain))
            await self._pace()

        return ScanSnapshot(scanned_at=utc_now(), domains=records)

    async def run(self, domains: Iterable[str], update_history: bool = True) -> ScanReport:
        """
        Scan, write the snapshot, then reconcile and write the history.

        Raises:
            PersistenceError: If either document cannot be written
            ValueError: If no state store was configured
        """
        if self._state_store is None:
            raise ValueError("ScanOrchestrator.run requires a state store")

        start_time = time.perf_counter()
        snapshot = await self.run_scan(domains)
        self._state_store.save_snapshot(snapshot)
        self._log_info(
            f"Wrote {len(snapshot.domains)} entries to {self._state_store.snapshot_path}",
            {"file_path": str(self._state_store.snapshot_path)},
        )

        new_events: list[HistoryEvent] = []
        if update_history:
            prior = self._state_store.load_history()
            result = self._reconciler.reconcile(snapshot, prior)
            self._state_store.save_history(result.history)
            new_events = result.new_events
            self._log_info(
                f"History updated with {result.new_event_count} new event(s)",
                {
                    "file_path": str(self._state_store.history_path),
                    "events": len(result.history.events),
                },
            )

        return ScanReport(
            snapshot=snapshot,
            new_events=new_events,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def _pace(self) -> None:
        """Fixed courtesy delay between domains."""
        if self._config.scan.pacing_seconds > 0:
            await asyncio.sleep(self._config.scan.pacing_seconds)

    def _log_info(self, message: str, data: dict) -> None:
        """Log an info message if logger is available."""
        if self._logger:
            self._logger.log(LogLevel.INFO, self.COMPONENT, message, data)

    @property
    def rdap_client(self) -> RDAPClient:
        return self._rdap_client

    @property
    def website_prober(self) -> WebsiteProber:
        return self._website_prober

    @property
    def reconciler(self) -> HistoryReconciler:
        return self._reconciler

    @property
    def config(self) -> SystemConfig:
        """Get the system configuration."""
        return self._config
