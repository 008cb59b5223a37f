from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from bucket_publisher.errors import PublishError


@dataclass(frozen=True)
class InlineBytes:
    data: bytes


@dataclass(frozen=True)
class FileRef:
    path: Path  # existence checked at push time, read at upload time


ContentSource = InlineBytes | FileRef


def resolve_content(source: ContentSource) -> bytes:
    """Turn a content source into the bytes to upload.

    File references are read here and nowhere else, so a queue full of large
    files holds paths rather than payloads.
    """
    if isinstance(source, InlineBytes):
        return source.data
    if isinstance(source, FileRef):
        return source.path.read_bytes()
    raise TypeError(f"Unsupported content source: {type(source).__name__}")


@dataclass(frozen=True)
class Item:
    key: str
    source: ContentSource
    compress: bool
    content_type: str
    cache_control: str
    access_policy: str
    storage_class: str

    def write_options(self) -> dict[str, str]:
        opts = {
            "content_type": self.content_type,
            "cache_control": self.cache_control,
            "access_policy": self.access_policy,
            "storage_class": self.storage_class,
        }
        if self.compress:
            opts["content_encoding"] = "gzip"
        return opts


@dataclass(frozen=True)
class UploadResult:
    item: Item
    status: str  # uploaded|failed
    attempts: int
    url: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "uploaded"


@dataclass(frozen=True)
class PublishReport:
    results: list[UploadResult] = field(default_factory=list)

    @property
    def uploaded(self) -> list[UploadResult]:
        return [r for r in self.results if r.status == "uploaded"]

    @property
    def failed(self) -> list[UploadResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return not self.failed

    def counts(self) -> dict[str, int]:
        return {"total": self.total, "uploaded": len(self.uploaded), "failed": len(self.failed)}

    def raise_for_failures(self) -> None:
        failed = self.failed
        if failed:
            raise PublishError(failed)
