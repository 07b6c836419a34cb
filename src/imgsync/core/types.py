"""Sync configuration types and defaults."""

from dataclasses import dataclass, replace

from ..exceptions import ConfigError

DEFAULT_LIMIT = 20
DEFAULT_QUERY_LIMIT = 20

# Manifest fetch retry used by the orchestrator
DEFAULT_RETRY = 3
DEFAULT_RETRY_DELAY = 1.0

# Copy retry; larger budget since a transfer is the expensive step
DEFAULT_SYNC_RETRY = 5
DEFAULT_SYNC_RETRY_DELAY = 10.0

# Low-level catalog/tag listing retry
DEFAULT_HTTP_RETRY = 3
DEFAULT_HTTP_RETRY_DELAY = 1.0
DEFAULT_HTTP_TIMEOUT = 5.0

DEFAULT_TIMEOUT = 600.0
DEFAULT_SYNC_TIMEOUT = 3600.0

REPORT_FAILURES = 1
REPORT_CHANGES = 2
REPORT_ALL = 3


@dataclass(frozen=True)
class Credentials:
    """Destination registry credentials."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class SyncOption:
    """Options for a single sync run."""

    user: str = ""
    password: str = ""
    timeout: float = DEFAULT_TIMEOUT
    limit: int = 0
    batch_size: int = 0
    batch_number: int = 0
    manifests_only: bool = False
    report: bool = False
    report_level: int = REPORT_FAILURES
    query_limit: int = 0
    namespace: str = ""
    kubeadm: bool = False

    fetch_retry: int = DEFAULT_RETRY
    fetch_retry_delay: float = DEFAULT_RETRY_DELAY
    sync_retry: int = DEFAULT_SYNC_RETRY
    sync_retry_delay: float = DEFAULT_SYNC_RETRY_DELAY
    http_retry: int = DEFAULT_HTTP_RETRY
    http_retry_delay: float = DEFAULT_HTTP_RETRY_DELAY
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    sync_timeout: float = DEFAULT_SYNC_TIMEOUT

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.user, self.password)

    @property
    def batching(self) -> bool:
        return self.batch_size > 0 and self.batch_number > 0

    def validate(self) -> "SyncOption":
        """Check option combinations and fill in defaults.

        Returns:
            A copy with zero limits replaced by their defaults

        Raises:
            ConfigError: If the combination of options is invalid
        """
        if not self.manifests_only and (not self.user or not self.password):
            raise ConfigError("destination user or password is empty")
        if self.limit < 0:
            raise ConfigError(f"concurrency limit must not be negative: {self.limit}")
        if self.query_limit < 0:
            raise ConfigError(f"query limit must not be negative: {self.query_limit}")
        if self.batch_size < 0 or self.batch_number < 0:
            raise ConfigError("batch size and batch number must not be negative")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive: {self.timeout}")
        if self.sync_timeout < 0:
            raise ConfigError(f"sync timeout must not be negative: {self.sync_timeout}")
        if self.report_level not in (REPORT_FAILURES, REPORT_CHANGES, REPORT_ALL):
            raise ConfigError(f"unknown report level: {self.report_level}")
        for name in ("fetch_retry", "sync_retry", "http_retry"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1")

        return replace(
            self,
            limit=self.limit or DEFAULT_LIMIT,
            query_limit=self.query_limit or DEFAULT_QUERY_LIMIT,
        )
