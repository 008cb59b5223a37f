"""Exception hierarchy for the publisher."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bucket_publisher.types import UploadResult


class PublisherError(Exception):
    """Base class for every error raised by bucket_publisher."""


class ConfigurationError(PublisherError, ValueError):
    """Raised synchronously at construction or push time, before any upload."""


class QueueClosedError(PublisherError):
    """Raised when pushing to a work queue that no longer accepts items."""


class UploadError(PublisherError):
    def __init__(self, key: str, attempts: int, cause: BaseException) -> None:
        super().__init__(f"Upload of '{key}' failed after {attempts} attempt(s): {cause}")
        self.key = key
        self.attempts = attempts
        self.cause = cause


class PublishError(PublisherError):
    """One or more items in a run could not be uploaded."""

    def __init__(self, failed: list[UploadResult]) -> None:
        keys = ", ".join(r.item.key for r in failed[:5])
        more = f" (+{len(failed) - 5} more)" if len(failed) > 5 else ""
        super().__init__(f"{len(failed)} item(s) failed to upload: {keys}{more}")
        self.failed = failed
