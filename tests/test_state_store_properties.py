"""
Property-based tests for the state store.

Covers forgiving reads of the snapshot and history documents and
all-or-nothing writes.
"""

import io
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_watch.enums import DomainStatus, LogLevel
from domain_watch.exceptions import PersistenceError
from domain_watch.models import (
    DomainLastState,
    DomainRecord,
    HistoryEvent,
    HistoryLog,
    ScanSnapshot,
    WebsiteProbeResult,
)
from domain_watch.scan_logger import ScanLogger
from domain_watch.state_store import StateStore


NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_store(tmp_dir: str, logger: ScanLogger = None) -> StateStore:
    public = Path(tmp_dir) / "public"
    return StateStore(public / "whois.json", public / "history.json", logger=logger)


@st.composite
def probe_results(draw):
    present = draw(st.booleans())
    if present:
        protocol = draw(st.sampled_from(["https", "http"]))
        return WebsiteProbeResult(
            present=True,
            protocol=protocol,
            status_code=draw(st.integers(min_value=200, max_value=399)),
            url_tried=f"{protocol}://example.ch/",
        )
    return draw(st.sampled_from([
        WebsiteProbeResult(present=False),
        WebsiteProbeResult(present=False, error="not reachable"),
        WebsiteProbeResult(present=False, protocol="https", status_code=503, url_tried="https://example.ch/"),
    ]))


@st.composite
def snapshots(draw):
    labels = draw(st.lists(
        st.text(alphabet="abcdefghijklmnopqrstuvwxyz-", min_size=1, max_size=12),
        max_size=6,
        unique=True,
    ))
    records = []
    for label in labels:
        registered = draw(st.booleans())
        records.append(DomainRecord(
            domain=f"{label}.ch",
            tld="ch",
            registered=registered,
            website=draw(probe_results()) if registered else WebsiteProbeResult.absent(),
            checked_at=NOW,
        ))
    return ScanSnapshot(scanned_at=NOW, domains=records)


class TestSnapshotPersistence:
    """Snapshot documents survive a save/load cycle unchanged."""

    @given(snapshot=snapshots())
    @settings(max_examples=50)
    def test_saved_snapshot_loads_back(self, snapshot: ScanSnapshot) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.save_snapshot(snapshot)

            assert store.load_snapshot() == snapshot

    def test_document_shape(self) -> None:
        snapshot = ScanSnapshot(
            scanned_at=NOW,
            domains=[DomainRecord(
                domain="b.ch",
                tld="ch",
                registered=True,
                website=WebsiteProbeResult(True, "https", 200, "https://b.ch/"),
                checked_at=NOW,
            )],
        )
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.save_snapshot(snapshot)

            data = json.loads(store.snapshot_path.read_text(encoding="utf-8"))
            assert data == {
                "scannedAt": "2025-06-01T12:00:00+00:00",
                "domains": [{
                    "domain": "b.ch",
                    "tld": "ch",
                    "registered": True,
                    "website": {
                        "present": True,
                        "protocol": "https",
                        "status": 200,
                        "urlTried": "https://b.ch/",
                    },
                    "checkedAt": "2025-06-01T12:00:00+00:00",
                }],
            }

    def test_missing_snapshot_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            snapshot = make_store(tmp_dir).load_snapshot(now=NOW)

            assert snapshot == ScanSnapshot(scanned_at=NOW, domains=[])

    @given(content=st.sampled_from([
        "",
        "{not json",
        "[]",
        '{"domains": []}',
        '{"scannedAt": "yesterday", "domains": []}',
        '{"scannedAt": "2025-01-01T00:00:00Z", "domains": [{"tld": "ch"}]}',
    ]))
    @settings(max_examples=20)
    def test_malformed_snapshot_is_empty(self, content: str) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.snapshot_path.parent.mkdir(parents=True)
            store.snapshot_path.write_text(content, encoding="utf-8")

            assert store.load_snapshot(now=NOW) == ScanSnapshot(scanned_at=NOW, domains=[])

    def test_javascript_timestamps_are_accepted(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.snapshot_path.parent.mkdir(parents=True)
            store.snapshot_path.write_text(json.dumps({
                "scannedAt": "2025-06-01T12:00:00.000Z",
                "domains": [{
                    "domain": "a.ch",
                    "tld": "ch",
                    "registered": False,
                    "website": {"present": False},
                    "checkedAt": "2025-06-01T12:00:00.000Z",
                }],
            }), encoding="utf-8")

            snapshot = store.load_snapshot()
            assert snapshot.scanned_at == NOW
            assert snapshot.domains[0].domain == "a.ch"


class TestHistoryPersistence:
    """History documents load forgivingly and save atomically."""

    def test_saved_history_loads_back(self) -> None:
        history = HistoryLog(
            events=[
                HistoryEvent(NOW, "a.ch", DomainStatus.AVAILABLE, None),
                HistoryEvent(NOW, "a.ch", DomainStatus.REGISTERED, DomainStatus.AVAILABLE),
            ],
            last_state={"a.ch": DomainLastState(DomainStatus.REGISTERED)},
        )
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.save_history(history)

            data = json.loads(store.history_path.read_text(encoding="utf-8"))
            assert data["events"][0]["previousStatus"] is None
            assert data["events"][1]["previousStatus"] == "available"
            assert data["lastState"] == {"a.ch": {"status": "registered"}}
            assert store.load_history() == history

    def test_missing_history_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            assert make_store(tmp_dir).load_history() == HistoryLog.empty()

    @given(content=st.sampled_from([
        "",
        "[1, 2]",
        '{"events": {}, "lastState": {}}',
        '{"events": [], "lastState": []}',
        '{"events": [{"date": "2025-01-01T00:00:00Z", "domain": "a.ch", "status": "parked"}]}',
        '{"events": [], "lastState": {"a.ch": {"status": "gone"}}}',
        '{"events": [{"domain": "a.ch"}], "lastState": {}}',
    ]))
    @settings(max_examples=20)
    def test_malformed_history_is_empty(self, content: str) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            logger = ScanLogger(output_stream=io.StringIO())
            store = make_store(tmp_dir, logger=logger)
            store.history_path.parent.mkdir(parents=True)
            store.history_path.write_text(content, encoding="utf-8")

            assert store.load_history() == HistoryLog.empty()
            assert logger.entries[-1].level == LogLevel.WARN

    def test_legacy_document_without_last_state(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.history_path.parent.mkdir(parents=True)
            store.history_path.write_text(json.dumps({
                "events": [{"date": "2025-06-01T12:00:00Z", "domain": "a.ch", "status": "website"}],
            }), encoding="utf-8")

            history = store.load_history()
            assert history.events[0].previous_status is None
            assert history.last_state == {}


class TestAtomicWrites:
    """Writes either fully replace the document or raise PersistenceError."""

    def test_no_temporary_files_remain(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.save_snapshot(ScanSnapshot(NOW, []))
            store.save_history(HistoryLog.empty())

            assert sorted(os.listdir(store.snapshot_path.parent)) == ["history.json", "whois.json"]

    def test_parent_directories_are_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = StateStore(
                Path(tmp_dir) / "a" / "b" / "whois.json",
                Path(tmp_dir) / "c" / "history.json",
            )
            store.save_snapshot(ScanSnapshot(NOW, []))
            store.save_history(HistoryLog.empty())

            assert store.snapshot_path.exists()
            assert store.history_path.exists()

    def test_failed_write_keeps_previous_document(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = make_store(tmp_dir)
            store.save_snapshot(ScanSnapshot(NOW, []))
            before = store.snapshot_path.read_text(encoding="utf-8")

            # A directory at the history path makes os.replace fail.
            store.history_path.mkdir()
            with pytest.raises(PersistenceError) as exc_info:
                store.save_history(HistoryLog.empty())

            assert exc_info.value.code == "io_error"
            assert exc_info.value.to_dict()["error_type"] == "PersistenceError"
            assert store.snapshot_path.read_text(encoding="utf-8") == before
            leftovers = [n for n in os.listdir(store.snapshot_path.parent) if n.endswith(".tmp")]
            assert leftovers == []

    def test_unwritable_location_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            (Path(tmp_dir) / "public").write_text("file in the way", encoding="utf-8")
            store = make_store(tmp_dir)

            with pytest.raises(PersistenceError):
                store.save_snapshot(ScanSnapshot(NOW, []))
