"""
Configuration dataclasses for the domain watch system.

This module defines all configuration structures used throughout the system,
including the RDAP registry, website probing, scan pacing, persistence,
logging, and the optional placeholder classifier.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


DEFAULT_RDAP_BASE_URL = "https://rdap.nic.ch"
DEFAULT_SNAPSHOT_PATH = Path("public") / "whois.json"
DEFAULT_HISTORY_PATH = Path("public") / "history.json"
DEFAULT_USER_AGENT = "DomainWatch/0.1 (+https://github.com/domain-watch)"

LOG_LEVELS = ("debug", "info", "warn", "error")
OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class RegistryConfig:
    """RDAP registry lookup configuration."""

    rdap_base_url: str = DEFAULT_RDAP_BASE_URL
    timeout_seconds: float = 5.0


@dataclass
class RetryConfig:
    """Retry behavior for rate-limited registry lookups."""

    max_retries: int = 1
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 2.0


@dataclass
class WebsiteProbeConfig:
    """Website reachability probing configuration."""

    timeout_seconds: float = 8.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class ScanConfig:
    """Scan traversal configuration."""

    pacing_seconds: float = 0.15


@dataclass
class PersistenceConfig:
    """Locations of the snapshot and history documents."""

    snapshot_path: Path = DEFAULT_SNAPSHOT_PATH
    history_path: Path = DEFAULT_HISTORY_PATH
    retention_days: int = 365


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class ClassifierConfig:
    """Placeholder page classifier (OpenAI-compatible chat API)."""

    enabled: bool = False
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 30.0
    max_html_chars: int = 20000


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    website: WebsiteProbeConfig = field(default_factory=WebsiteProbeConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    domains: list[str] = field(default_factory=list)
    domains_file: Optional[Path] = None

    def validate(self) -> None:
        """
        Check value ranges across all sub-configurations.

        Raises:
            ConfigurationError: On the first invalid value found
        """
        problems = []
        if not self.registry.rdap_base_url.lower().startswith(("https://", "http://")):
            problems.append(("registry.rdap_base_url", self.registry.rdap_base_url))
        if self.registry.timeout_seconds <= 0:
            problems.append(("registry.timeout_seconds", self.registry.timeout_seconds))
        # A rate-limited lookup is retried exactly once.
        if self.retry.max_retries != 1:
            problems.append(("retry.max_retries", self.retry.max_retries))
        if not 1.0 <= self.retry.base_delay_seconds <= 2.0:
            problems.append(("retry.base_delay_seconds", self.retry.base_delay_seconds))
        if self.retry.max_delay_seconds < self.retry.base_delay_seconds:
            problems.append(("retry.max_delay_seconds", self.retry.max_delay_seconds))
        if self.website.timeout_seconds <= 0:
            problems.append(("website.timeout_seconds", self.website.timeout_seconds))
        if self.scan.pacing_seconds < 0:
            problems.append(("scan.pacing_seconds", self.scan.pacing_seconds))
        if self.persistence.retention_days < 1:
            problems.append(("persistence.retention_days", self.persistence.retention_days))
        if self.logging.level not in LOG_LEVELS:
            problems.append(("logging.level", self.logging.level))
        if self.logging.output_format not in OUTPUT_FORMATS:
            problems.append(("logging.output_format", self.logging.output_format))
        if self.classifier.enabled and not self.classifier.api_key:
            problems.append(("classifier.api_key", "<empty>"))

        if problems:
            name, value = problems[0]
            raise ConfigurationError(
                code="invalid_value",
                message=f"Invalid configuration value for {name}: {value!r}",
                details={"invalid": [p[0] for p in problems]},
            )
