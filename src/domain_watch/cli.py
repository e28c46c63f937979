"""
Command-line interface for the domain watch system.

This module provides the main CLI entry point with commands for:
- scan: Probe all configured domains, write the snapshot and update history
- show: Print the stored snapshot or history (empty documents if absent)
- config: Configuration management

Configuration is layered: built-in defaults, then an optional JSON config
file, then environment variables (a ``.env`` file is loaded first), then
command-line flags.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from . import __version__
from .classifier import LLMPlaceholderClassifier
from .config import (
    ClassifierConfig,
    LoggingConfig,
    PersistenceConfig,
    RegistryConfig,
    RetryConfig,
    ScanConfig,
    SystemConfig,
    WebsiteProbeConfig,
)
from .enums import DomainStatus
from .exceptions import ConfigurationError, PersistenceError
from .orchestrator import ScanOrchestrator
from .reconciler import status_counts
from .scan_logger import ScanLogger
from .state_store import StateStore


DEFAULT_CONFIG_PATH = Path("domain-watch.json")
DEFAULT_DOMAINS_FILE = Path("domains.txt")


def create_default_config() -> SystemConfig:
    """Create a system configuration with default settings."""
    return SystemConfig()


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Missing sections and keys fall back to their defaults.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if the file exists, None otherwise

    Raises:
        ConfigurationError: If the file cannot be parsed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            code="parse_error",
            message=f"Could not read config file {config_path}: {e}",
            details={"file_path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            code="parse_error",
            message=f"Config file {config_path} must contain a JSON object",
            details={"file_path": str(config_path)},
        )

    try:
        registry_data = data.get("registry", {})
        registry = RegistryConfig(
            rdap_base_url=registry_data.get("rdap_base_url", RegistryConfig.rdap_base_url),
            timeout_seconds=float(registry_data.get("timeout_seconds", 5.0)),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_retries=int(retry_data.get("max_retries", 1)),
            base_delay_seconds=float(retry_data.get("base_delay_seconds", 1.0)),
            max_delay_seconds=float(retry_data.get("max_delay_seconds", 2.0)),
        )

        website_data = data.get("website", {})
        website = WebsiteProbeConfig(
            timeout_seconds=float(website_data.get("timeout_seconds", 8.0)),
            user_agent=website_data.get("user_agent", WebsiteProbeConfig.user_agent),
        )

        scan_data = data.get("scan", {})
        scan = ScanConfig(
            pacing_seconds=float(scan_data.get("pacing_seconds", 0.15)),
        )

        persistence_data = data.get("persistence", {})
        persistence = PersistenceConfig(
            snapshot_path=Path(persistence_data.get("snapshot_path", PersistenceConfig.snapshot_path)),
            history_path=Path(persistence_data.get("history_path", PersistenceConfig.history_path)),
            retention_days=int(persistence_data.get("retention_days", 365)),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        classifier_data = data.get("classifier", {})
        classifier = ClassifierConfig(
            enabled=bool(classifier_data.get("enabled", False)),
            api_url=classifier_data.get("api_url", ClassifierConfig.api_url),
            api_key=classifier_data.get("api_key", ""),
            model=classifier_data.get("model", ClassifierConfig.model),
            timeout_seconds=float(classifier_data.get("timeout_seconds", 30.0)),
            max_html_chars=int(classifier_data.get("max_html_chars", 20000)),
        )

        domains = [d for d in data.get("domains", []) if isinstance(d, str) and d.strip()]
        domains_file = data.get("domains_file")
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigurationError(
            code="invalid_value",
            message=f"Invalid value in config file {config_path}: {e}",
            details={"file_path": str(config_path)},
        ) from e

    return SystemConfig(
        registry=registry,
        retry=retry,
        website=website,
        scan=scan,
        persistence=persistence,
        logging=logging_config,
        classifier=classifier,
        domains=[d.strip() for d in domains],
        domains_file=Path(domains_file) if domains_file else None,
    )


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "registry": {
                "rdap_base_url": config.registry.rdap_base_url,
                "timeout_seconds": config.registry.timeout_seconds,
            },
            "retry": {
                "max_retries": config.retry.max_retries,
                "base_delay_seconds": config.retry.base_delay_seconds,
                "max_delay_seconds": config.retry.max_delay_seconds,
            },
            "website": {
                "timeout_seconds": config.website.timeout_seconds,
                "user_agent": config.website.user_agent,
            },
            "scan": {
                "pacing_seconds": config.scan.pacing_seconds,
            },
            "persistence": {
                "snapshot_path": str(config.persistence.snapshot_path),
                "history_path": str(config.persistence.history_path),
                "retention_days": config.persistence.retention_days,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "classifier": {
                "enabled": config.classifier.enabled,
                "api_url": config.classifier.api_url,
                "api_key": config.classifier.api_key,
                "model": config.classifier.model,
                "timeout_seconds": config.classifier.timeout_seconds,
                "max_html_chars": config.classifier.max_html_chars,
            },
            "domains": list(config.domains),
            "domains_file": str(config.domains_file) if config.domains_file else None,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, default))
    except (TypeError, ValueError):
        return default


def apply_env_overrides(
    config: SystemConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> SystemConfig:
    """
    Apply environment variable overrides to a configuration in place.

    Malformed numeric values keep the current setting.
    """
    env = os.environ if environ is None else environ

    if env.get("RDAP_BASE_URL"):
        config.registry.rdap_base_url = env["RDAP_BASE_URL"].strip()
    if env.get("RDAP_TIMEOUT"):
        config.registry.timeout_seconds = _float_env(
            env, "RDAP_TIMEOUT", config.registry.timeout_seconds
        )
    if env.get("HTTP_TIMEOUT"):
        config.website.timeout_seconds = _float_env(
            env, "HTTP_TIMEOUT", config.website.timeout_seconds
        )
    if env.get("SCAN_PACING_SECONDS"):
        config.scan.pacing_seconds = _float_env(
            env, "SCAN_PACING_SECONDS", config.scan.pacing_seconds
        )
    if env.get("OUTPUT_FILE"):
        config.persistence.snapshot_path = Path(env["OUTPUT_FILE"])
    if env.get("HISTORY_FILE"):
        config.persistence.history_path = Path(env["HISTORY_FILE"])
    if env.get("DOMAINS_FILE"):
        config.domains_file = Path(env["DOMAINS_FILE"])
    if env.get("LOG_LEVEL"):
        config.logging.level = env["LOG_LEVEL"].strip().lower()
    if env.get("DEBUG") == "1":
        config.logging.level = "debug"
    if env.get("CLASSIFIER_API_KEY"):
        config.classifier.api_key = env["CLASSIFIER_API_KEY"].strip()
        config.classifier.enabled = True
    if env.get("CLASSIFIER_MODEL"):
        config.classifier.model = env["CLASSIFIER_MODEL"].strip()
    if env.get("CLASSIFIER_API_URL"):
        config.classifier.api_url = env["CLASSIFIER_API_URL"].strip()

    return config


def parse_domain_list(value: str) -> list[str]:
    """
    Split a comma, semicolon or whitespace separated list of domains.

    Entries starting with '#' are skipped and duplicates dropped, keeping
    the first occurrence.
    """
    if not value:
        return []
    raw = [p.strip() for chunk in value.replace(";", ",").split(",") for p in chunk.split()]
    seen, out = set(), []
    for d in raw:
        if not d or d.startswith("#"):
            continue
        if d not in seen:
            out.append(d)
            seen.add(d)
    return out


def read_domains_file(path: Path, logger: Optional[ScanLogger] = None) -> list[str]:
    """
    Read domains from a file.

    ``.json`` files hold an array of strings; any other file lists one
    domain per line with '#' comments. Unreadable or malformed files yield
    an empty list.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except (OSError, UnicodeDecodeError) as e:
        if logger:
            logger.warn("DomainList", f"Could not read domains file: {e}", {"file_path": str(path)})
        return []

    if path.suffix.lower() == ".json":
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            if logger:
                logger.warn("DomainList", f"Malformed domains file: {e}", {"file_path": str(path)})
            return []
        if not isinstance(parsed, list):
            return []
        return [d.strip() for d in parsed if isinstance(d, str) and d.strip()]

    return [
        line.strip()
        for line in raw.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def load_domains(
    config: SystemConfig,
    cli_domains: Optional[list[str]] = None,
    domains_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    logger: Optional[ScanLogger] = None,
) -> list[str]:
    """
    Resolve the domain list to scan.

    First non-empty source wins: command-line domains, a domains file
    (flag, config or ``domains.txt`` in the working directory), the
    DOMAINS environment variable, the config file's ``domains`` list.
    """
    env = os.environ if environ is None else environ

    if cli_domains:
        return list(cli_domains)

    path = domains_file or config.domains_file
    if path is None and DEFAULT_DOMAINS_FILE.exists():
        path = DEFAULT_DOMAINS_FILE
    if path is not None:
        domains = read_domains_file(Path(path), logger)
        if domains:
            return domains

    env_domains = parse_domain_list(env.get("DOMAINS", ""))
    if env_domains:
        return env_domains

    return list(config.domains)


def build_logger(config: SystemConfig, verbose: bool = False) -> ScanLogger:
    level = "debug" if verbose else config.logging.level
    return ScanLogger.from_level_name(level, output_format=config.logging.output_format)


def build_classifier(
    config: SystemConfig,
    logger: Optional[ScanLogger] = None,
) -> Optional[LLMPlaceholderClassifier]:
    """Create the LLM classifier if it is enabled and has an API key."""
    if not config.classifier.enabled or not config.classifier.api_key:
        return None
    return LLMPlaceholderClassifier(config.classifier, logger=logger)


def _resolve_config(config_arg: Optional[str]) -> SystemConfig:
    """Defaults, then config file, then environment."""
    config_path = Path(config_arg) if config_arg else DEFAULT_CONFIG_PATH
    config = load_config_from_file(config_path)
    if config is None:
        if config_arg:
            raise ConfigurationError(
                code="not_found",
                message=f"Config file not found: {config_path}",
                details={"file_path": str(config_path)},
            )
        config = create_default_config()
    return apply_env_overrides(config)


async def run_scan_command(
    config: SystemConfig,
    domains: list[str],
    logger: ScanLogger,
    update_history: bool = True,
) -> int:
    """
    Execute a full scan run.

    Returns:
        Exit code (0 on success, 1 if a document could not be written)
    """
    state_store = StateStore(
        snapshot_path=config.persistence.snapshot_path,
        history_path=config.persistence.history_path,
        logger=logger,
    )
    classifier = build_classifier(config, logger)

    try:
        async with ScanOrchestrator(
            config=config,
            state_store=state_store,
            classifier=classifier,
            logger=logger,
        ) as orchestrator:
            report = await orchestrator.run(domains, update_history=update_history)
    except PersistenceError as e:
        logger.error("CLI", f"Scan failed: {e.message}", error=e, data=e.details)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        if classifier is not None:
            await classifier.close()

    print(
        f"[scan] wrote {len(report.snapshot.domains)} entries -> "
        f"{config.persistence.snapshot_path}"
    )
    print(
        "  available: {a}, registered: {r}, website: {w}, new events: {e}".format(
            a=report.count(DomainStatus.AVAILABLE),
            r=report.count(DomainStatus.REGISTERED),
            w=report.count(DomainStatus.WEBSITE),
            e=report.new_event_count,
        )
    )
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Handle the 'scan' command."""
    load_dotenv()
    try:
        config = _resolve_config(args.config)
        if args.output:
            config.persistence.snapshot_path = Path(args.output)
        if args.history:
            config.persistence.history_path = Path(args.history)
        config.validate()
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    logger = build_logger(config, verbose=args.verbose)
    domains = load_domains(
        config,
        cli_domains=args.domains,
        domains_file=Path(args.domains_file) if args.domains_file else None,
        logger=logger,
    )
    if not domains:
        print(
            "No domains configured. Pass domains, use --domains-file, "
            "create domains.txt or set DOMAINS.",
            file=sys.stderr,
        )
        return 1

    return asyncio.run(run_scan_command(
        config=config,
        domains=domains,
        logger=logger,
        update_history=not args.no_history,
    ))


def cmd_show(args: argparse.Namespace) -> int:
    """Handle the 'show' command."""
    load_dotenv()
    try:
        config = _resolve_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    store = StateStore(
        snapshot_path=config.persistence.snapshot_path,
        history_path=config.persistence.history_path,
    )

    if args.document == "history":
        history = store.load_history()
        if args.summary:
            counts = status_counts(history)
            for status in DomainStatus:
                print(f"{status.value}: {counts[status]}")
            print(f"events: {len(history.events)}")
            return 0
        print(json.dumps(history.to_dict(), indent=2, ensure_ascii=False))
        return 0

    snapshot = store.load_snapshot()
    print(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(create_default_config(), config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    try:
        config = load_config_from_file(config_path)
        if config is not None and args.action == "validate":
            config.validate()
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if config is None:
        print(f"No configuration found at: {config_path}")
        print("Use 'config init' to create a default configuration.")
        return 1

    if args.action == "show":
        print(f"Configuration from: {config_path}")
        print(f"  RDAP endpoint: {config.registry.rdap_base_url}")
        print(f"  Timeouts: rdap {config.registry.timeout_seconds}s, website {config.website.timeout_seconds}s")
        print(f"  Pacing: {config.scan.pacing_seconds}s")
        print(f"  Snapshot file: {config.persistence.snapshot_path}")
        print(f"  History file: {config.persistence.history_path}")
        print(f"  Retention: {config.persistence.retention_days} days")
        print(f"  Domains: {len(config.domains)} configured")
        print(f"  Classifier: {'enabled' if config.classifier.enabled else 'disabled'}")
        print(f"  Log level: {config.logging.level}")
        return 0

    print(f"Configuration at {config_path} is valid.")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-watch",
        description="Track registration and website status of a list of domains",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'scan' command
    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan all domains and update snapshot and history",
    )
    scan_parser.add_argument(
        "domains",
        nargs="*",
        help="Domains to scan (overrides all other domain sources)",
    )
    scan_parser.add_argument(
        "--domains-file", "-f",
        help="File with domains (one per line, or a JSON array)",
    )
    scan_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    scan_parser.add_argument(
        "--output", "-o",
        help="Path of the snapshot document",
    )
    scan_parser.add_argument(
        "--history",
        help="Path of the history document",
    )
    scan_parser.add_argument(
        "--no-history",
        action="store_true",
        help="Only write the snapshot, leave the history untouched",
    )
    scan_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    scan_parser.set_defaults(func=cmd_scan)

    # 'show' command
    show_parser = subparsers.add_parser(
        "show",
        help="Print the stored snapshot or history",
    )
    show_parser.add_argument(
        "document",
        nargs="?",
        choices=["snapshot", "history"],
        default="snapshot",
        help="Document to print (default: snapshot)",
    )
    show_parser.add_argument(
        "--summary", "-s",
        action="store_true",
        help="Print status counts instead of the history document",
    )
    show_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    show_parser.set_defaults(func=cmd_show)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
