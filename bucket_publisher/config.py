"""Environment-variable-driven configuration for the publisher.

Nothing here reads credentials implicitly; the storage client is built from
an explicit ``PublisherConfig`` passed to the publisher.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from bucket_publisher.errors import ConfigurationError

DEFAULT_WORKERS = 3
DEFAULT_TTL = 5
DEFAULT_ACCESS_POLICY = "public-read"
DEFAULT_STORAGE_CLASS = "STANDARD"
DEFAULT_UPLOAD_TIMEOUT = 60.0

ACCESS_POLICIES: frozenset[str] = frozenset(
    {
        "public-read",
        "private",
        "authenticated-read",
        "bucket-owner-read",
        "bucket-owner-full-control",
        "project-private",
    }
)


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return int(v)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from exc


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return float(v)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {v!r}") from exc


def _get_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass(frozen=True)
class PublisherConfig:
    # Target
    bucket: str | None = None
    base_path: str | None = None

    # Pool
    workers: int = DEFAULT_WORKERS

    # Per-item defaults
    default_ttl: int = DEFAULT_TTL
    access_policy: str = DEFAULT_ACCESS_POLICY
    storage_class: str = DEFAULT_STORAGE_CLASS

    # Storage client passthrough
    project: str | None = None
    credentials_file: str | None = None
    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT

    @classmethod
    def from_env(cls) -> PublisherConfig:
        return cls(
            bucket=_get_optional("PUBLISHER_BUCKET"),
            base_path=_get_optional("PUBLISHER_BASE_PATH"),
            workers=_get_int("PUBLISHER_WORKERS", DEFAULT_WORKERS),
            default_ttl=_get_int("PUBLISHER_DEFAULT_TTL", DEFAULT_TTL),
            access_policy=_get_optional("PUBLISHER_ACCESS_POLICY") or DEFAULT_ACCESS_POLICY,
            storage_class=(_get_optional("PUBLISHER_STORAGE_CLASS") or DEFAULT_STORAGE_CLASS).upper(),
            project=_get_optional("GOOGLE_CLOUD_PROJECT"),
            credentials_file=_get_optional("PUBLISHER_CREDENTIALS_FILE"),
            upload_timeout=_get_float("PUBLISHER_UPLOAD_TIMEOUT", DEFAULT_UPLOAD_TIMEOUT),
        )

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigurationError("PUBLISHER_WORKERS must be >= 1")
        if self.default_ttl < 0:
            raise ConfigurationError("PUBLISHER_DEFAULT_TTL must be >= 0")
        if self.upload_timeout <= 0:
            raise ConfigurationError("PUBLISHER_UPLOAD_TIMEOUT must be > 0")
        if self.access_policy not in ACCESS_POLICIES:
            allowed = ", ".join(sorted(ACCESS_POLICIES))
            raise ConfigurationError(
                f"Unknown access policy '{self.access_policy}' (expected one of: {allowed})"
            )
        if self.bucket is not None and not self.bucket.strip():
            raise ConfigurationError("PUBLISHER_BUCKET was set but is empty")
