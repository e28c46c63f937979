"""
Tests for the domain-watch command-line interface.

The probers' HTTP clients are patched to use httpx.MockTransport so
``scan`` runs end to end without network access.
"""

import json
from pathlib import Path

import httpx
import pytest

from domain_watch.cli import main
from domain_watch.rdap_client import RDAPClient
from domain_watch.website_prober import WebsiteProber


ENV_VARS = [
    "RDAP_BASE_URL", "RDAP_TIMEOUT", "HTTP_TIMEOUT", "SCAN_PACING_SECONDS",
    "OUTPUT_FILE", "HISTORY_FILE", "DOMAINS_FILE", "DOMAINS", "LOG_LEVEL",
    "DEBUG", "CLASSIFIER_API_KEY", "CLASSIFIER_MODEL", "CLASSIFIER_API_URL",
]

REGISTERED = {"taken.ch", "site.ch"}
SITES = {"site.ch"}


def fake_internet(request: httpx.Request) -> httpx.Response:
    if request.url.host == "rdap.test":
        domain = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200 if domain in REGISTERED else 404)
    if request.url.host in SITES:
        return httpx.Response(200)
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RDAP_BASE_URL", "https://rdap.test")
    monkeypatch.setenv("SCAN_PACING_SECONDS", "0")

    def build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(fake_internet))

    monkeypatch.setattr(RDAPClient, "_build_client", build_client)
    monkeypatch.setattr(WebsiteProber, "_build_client", build_client)
    return tmp_path


class TestScanCommand:
    """scan probes, writes the snapshot and updates the history."""

    def test_scan_writes_documents(self, workspace: Path, capsys) -> None:
        exit_code = main(["scan", "free.ch", "taken.ch", "site.ch"])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "[scan] wrote 3 entries -> " in out
        assert "available: 1, registered: 1, website: 1, new events: 3" in out

        snapshot = json.loads((workspace / "public" / "whois.json").read_text(encoding="utf-8"))
        assert [d["domain"] for d in snapshot["domains"]] == ["free.ch", "taken.ch", "site.ch"]
        history = json.loads((workspace / "public" / "history.json").read_text(encoding="utf-8"))
        assert history["lastState"] == {
            "free.ch": {"status": "available"},
            "taken.ch": {"status": "registered"},
            "site.ch": {"status": "website"},
        }

    def test_second_scan_adds_no_events(self, workspace: Path, capsys) -> None:
        main(["scan", "free.ch", "site.ch"])
        capsys.readouterr()

        assert main(["scan", "free.ch", "site.ch"]) == 0
        assert "new events: 0" in capsys.readouterr().out

    def test_domains_file_in_working_directory(self, workspace: Path) -> None:
        (workspace / "domains.txt").write_text("# watched\nfree.ch\nsite.ch\n", encoding="utf-8")

        assert main(["scan"]) == 0

        snapshot = json.loads((workspace / "public" / "whois.json").read_text(encoding="utf-8"))
        assert [d["domain"] for d in snapshot["domains"]] == ["free.ch", "site.ch"]

    def test_domains_from_environment(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOMAINS", "taken.ch, free.ch")

        assert main(["scan", "--output", "out/scan.json", "--no-history"]) == 0

        snapshot = json.loads((workspace / "out" / "scan.json").read_text(encoding="utf-8"))
        assert [d["domain"] for d in snapshot["domains"]] == ["taken.ch", "free.ch"]
        assert not (workspace / "public" / "history.json").exists()

    def test_empty_domain_list_keeps_stored_snapshot(self, workspace: Path, capsys) -> None:
        main(["scan", "taken.ch"])
        snapshot_path = workspace / "public" / "whois.json"
        before = snapshot_path.read_text(encoding="utf-8")
        capsys.readouterr()

        assert main(["scan"]) == 1

        assert "No domains configured" in capsys.readouterr().err
        assert snapshot_path.read_text(encoding="utf-8") == before

    def test_unwritable_output_fails(self, workspace: Path, capsys) -> None:
        (workspace / "blocked").write_text("file in the way", encoding="utf-8")

        assert main(["scan", "free.ch", "--output", "blocked/whois.json"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_environment_fails(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "loud")

        assert main(["scan", "free.ch"]) == 1

    def test_missing_explicit_config_fails(self, workspace: Path) -> None:
        assert main(["scan", "free.ch", "--config", "absent.json"]) == 1


class TestShowCommand:
    """show prints stored documents, or empty ones."""

    def test_show_empty_snapshot(self, workspace: Path, capsys) -> None:
        assert main(["show"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["domains"] == []
        assert "scannedAt" in data

    def test_show_history_summary(self, workspace: Path, capsys) -> None:
        main(["scan", "free.ch", "taken.ch"])
        capsys.readouterr()

        assert main(["show", "history", "--summary"]) == 0

        out = capsys.readouterr().out
        assert "available: 1" in out
        assert "registered: 1" in out
        assert "website: 0" in out
        assert "events: 2" in out

    def test_show_history_document(self, workspace: Path, capsys) -> None:
        assert main(["show", "history"]) == 0

        assert json.loads(capsys.readouterr().out) == {"events": [], "lastState": {}}


class TestConfigCommand:
    """config init, show and validate."""

    def test_init_show_validate(self, workspace: Path, capsys) -> None:
        assert main(["config", "init"]) == 0
        assert (workspace / "domain-watch.json").exists()

        assert main(["config", "show"]) == 0
        assert "RDAP endpoint: https://rdap.nic.ch" in capsys.readouterr().out

        assert main(["config", "validate"]) == 0

    def test_init_refuses_overwrite(self, workspace: Path) -> None:
        assert main(["config", "init"]) == 0
        assert main(["config", "init"]) == 1
        assert main(["config", "init", "--force"]) == 0

    def test_validate_rejects_bad_values(self, workspace: Path) -> None:
        (workspace / "domain-watch.json").write_text(
            json.dumps({"persistence": {"retention_days": 0}}), encoding="utf-8"
        )

        assert main(["config", "validate"]) == 1

    def test_show_without_config(self, workspace: Path) -> None:
        assert main(["config", "show"]) == 1

    def test_no_command_prints_help(self, workspace: Path, capsys) -> None:
        assert main([]) == 0
        assert "domain-watch" in capsys.readouterr().out
