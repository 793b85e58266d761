"""Environment-based configuration for tailnet-dns."""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Config:
    # Tailscale directory
    tailnet: str = field(
        default_factory=lambda: os.getenv("TAILNET", "murf.org")
    )
    api_key: str = field(
        default_factory=lambda: os.getenv("TAILSCALE_API_KEY", "")
    )
    api_url: str = field(
        default_factory=lambda: os.getenv(
            "TAILSCALE_API_URL",
            "https://api.tailscale.com/api/v2",
        )
    )
    fetch_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))
    )

    # Served zone
    domain: str = field(
        default_factory=lambda: os.getenv("DNS_DOMAIN", "murf.dev")
    )
    ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("DNS_TTL_SECONDS", "60"))
    )
    # Tags of the form "tag:<prefix><alias>" become CNAMEs to the tagged device
    alias_tag_prefix: str = field(
        default_factory=lambda: os.getenv("ALIAS_TAG_PREFIX", "cname-")
    )

    # Scheduling
    refresh_interval_seconds: int = field(
        default_factory=lambda: int(os.getenv("REFRESH_INTERVAL_SECONDS", "300"))
    )

    # Listener
    listen_host: str = field(
        default_factory=lambda: os.getenv("LISTEN_HOST", "::")
    )
    listen_port: int = field(
        default_factory=lambda: int(os.getenv("LISTEN_PORT", "8053"))
    )

    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    @property
    def devices_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/tailnet/{self.tailnet}/devices"

    @property
    def zone(self) -> str:
        """Served domain without a trailing dot."""
        return self.domain.rstrip(".")


def load_config() -> Config:
    return Config()
