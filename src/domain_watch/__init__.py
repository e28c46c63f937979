"""
Domain Watch - registration and website status tracking for a domain list.

This package periodically checks a fixed list of domains via RDAP and
HTTP(S), writes a snapshot of the current state, and keeps a pruned
history of status changes for display on a dashboard.
"""

__version__ = "0.1.0"
__author__ = "Domain Watch Team"

from domain_watch.exceptions import (
    DomainWatchError,
    ConfigurationError,
    PersistenceError,
    ClassifierError,
)
from domain_watch.enums import (
    DomainStatus,
    RegistrationOutcome,
    Scheme,
    LogLevel,
)
from domain_watch.config import (
    RegistryConfig,
    RetryConfig,
    WebsiteProbeConfig,
    ScanConfig,
    PersistenceConfig,
    LoggingConfig,
    ClassifierConfig,
    SystemConfig,
)
from domain_watch.models import (
    WebsiteProbeResult,
    DomainRecord,
    ScanSnapshot,
    HistoryEvent,
    DomainLastState,
    HistoryLog,
    derive_status,
    derive_tld,
)
from domain_watch.scan_logger import (
    ScanLogger,
    LogEntry,
)
from domain_watch.retry_manager import (
    RetryManager,
    RetryResult,
)
from domain_watch.rdap_client import (
    RDAPClient,
    RDAPResponse,
    RegistrationCheck,
    REGISTRATION_POLICY,
)
from domain_watch.classifier import (
    PlaceholderClassifier,
    StaticClassifier,
    LLMPlaceholderClassifier,
)
from domain_watch.website_prober import (
    WebsiteProber,
    select_result,
    METHOD_REJECTED_STATUSES,
)
from domain_watch.reconciler import (
    HistoryReconciler,
    ReconcileResult,
)
from domain_watch.state_store import (
    StateStore,
)
from domain_watch.orchestrator import (
    ScanOrchestrator,
    ScanReport,
)
from domain_watch.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
    load_domains,
)

__all__ = [
    # Exceptions
    "DomainWatchError",
    "ConfigurationError",
    "PersistenceError",
    "ClassifierError",
    # Enums
    "DomainStatus",
    "RegistrationOutcome",
    "Scheme",
    "LogLevel",
    # Configuration
    "RegistryConfig",
    "RetryConfig",
    "WebsiteProbeConfig",
    "ScanConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "ClassifierConfig",
    "SystemConfig",
    # Models
    "WebsiteProbeResult",
    "DomainRecord",
    "ScanSnapshot",
    "HistoryEvent",
    "DomainLastState",
    "HistoryLog",
    "derive_status",
    "derive_tld",
    # Logging
    "ScanLogger",
    "LogEntry",
    # Retry Manager
    "RetryManager",
    "RetryResult",
    # Registration prober
    "RDAPClient",
    "RDAPResponse",
    "RegistrationCheck",
    "REGISTRATION_POLICY",
    # Classifier
    "PlaceholderClassifier",
    "StaticClassifier",
    "LLMPlaceholderClassifier",
    # Website prober
    "WebsiteProber",
    "select_result",
    "METHOD_REJECTED_STATUSES",
    # Reconciler
    "HistoryReconciler",
    "ReconcileResult",
    # State Store
    "StateStore",
    # Orchestrator
    "ScanOrchestrator",
    "ScanReport",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
    "load_domains",
]
