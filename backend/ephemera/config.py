# backend/ephemera/config.py
from functools import lru_cache
from typing import List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Control plane settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="EPHEMERA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Ephemera"
    log_level: str = "INFO"

    # Compute provider
    hcloud_token: str = ""
    hcloud_poll_interval: float = 5.0
    location: str = "nbg1"
    # Comma separated provider IDs, e.g. "1234,5678"
    network_ids: str = ""
    ssh_key_ids: str = ""
    default_instance_type: str = "cx22"

    # DNS provider
    dns_api_url: str = "https://dns.hetzner.com/api/v1"
    dns_api_token: str = ""
    dns_zone_id: str = ""
    dns_domain: str = ""
    dns_record_ttl: int = 300
    dns_request_timeout: float = 10.0

    # Authorization
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Background jobs
    redis_url: str = "redis://localhost:6379/0"
    # Expiry of the per-service termination lock shared by API and workers
    termination_lock_timeout_seconds: float = 3600.0

    # Lifecycle
    reaper_enabled: bool = True
    reaper_interval_seconds: float = 300.0
    max_ttl_hours: int = 12
    unlock_poll_interval_seconds: float = 5.0
    unlock_timeout_seconds: float = 60.0
    # 0 disables the bound on shutdown/snapshot/reboot progress waits
    action_timeout_seconds: float = 900.0

    @field_validator("network_ids", "ssh_key_ids")
    @classmethod
    def validate_id_list(cls, value: str) -> str:
        for part in _split_ids(value):
            if not part.isdigit():
                raise ValueError(f"expected comma separated integer IDs, got {part!r}")
        return value

    @model_validator(mode="after")
    def validate_dns(self) -> "Settings":
        if self.dns_zone_id and not self.dns_domain:
            raise ValueError("dns_domain is required when dns_zone_id is set")
        return self

    @property
    def network_id_list(self) -> List[int]:
        return [int(part) for part in _split_ids(self.network_ids)]

    @property
    def ssh_key_id_list(self) -> List[int]:
        return [int(part) for part in _split_ids(self.ssh_key_ids)]

    @property
    def dns_enabled(self) -> bool:
        return bool(self.dns_zone_id)


def _split_ids(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
