"""Build queueable Items from publish requests.

All metadata is resolved here, at push time, so a bad request fails before
any worker starts. Only the body is left for the worker to transform.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from bucket_publisher.config import (
    ACCESS_POLICIES,
    DEFAULT_ACCESS_POLICY,
    DEFAULT_STORAGE_CLASS,
    DEFAULT_TTL,
)
from bucket_publisher.errors import ConfigurationError
from bucket_publisher.types import ContentSource, FileRef, InlineBytes, Item

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES: frozenset[str] = frozenset(
    {".jpg", ".jpeg", ".gif", ".png", ".tif", ".tiff", ".webp"}
)

CONTENT_TYPE_ALIASES: dict[str, str] = {
    "xml": "application/xml",
    "text": "text/plain",
    "html": "text/html",
}

STORAGE_CLASS_ALIASES: dict[str, str] = {
    "standard": "STANDARD",
    "reduced": "NEARLINE",
}

# Platform mime.types files disagree on a few common web types; pin them.
_TYPE_OVERRIDES: dict[str, str] = {
    ".xml": "application/xml",
    ".json": "application/json",
    ".js": "application/javascript",
    ".css": "text/css",
    ".md": "text/markdown",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".woff2": "font/woff2",
}

_mime = mimetypes.MimeTypes()
for _ext, _type in _TYPE_OVERRIDES.items():
    _mime.add_type(_type, _ext)


def build_key(name: str, base_path: str | None = None) -> str:
    if not name:
        raise ConfigurationError("name must be a non-empty string")
    if base_path:
        return f"{base_path}/{name}"
    return name


def _suffix(key: str) -> str:
    return Path(key).suffix.lower()


def infer_content_type(key: str) -> str | None:
    content_type, _ = _mime.guess_type(key, strict=False)
    return content_type


def resolve_content_type(key: str, content_type: str | None) -> str:
    if content_type:
        return CONTENT_TYPE_ALIASES.get(content_type, content_type)
    inferred = infer_content_type(key)
    if not inferred:
        raise ConfigurationError(
            f"Cannot infer content type for '{key}'; pass content_type explicitly"
        )
    return inferred


def resolve_cache_control(cache_control: str | None, ttl: int | None, default_ttl: int = DEFAULT_TTL) -> str:
    if cache_control is not None:
        return cache_control
    effective = default_ttl if ttl is None else ttl
    if effective < 0:
        raise ConfigurationError(f"ttl must be >= 0, got {effective}")
    return f"max-age={int(effective)}"


def is_image(key: str, content_type: str) -> bool:
    return _suffix(key) in IMAGE_SUFFIXES or content_type.lower().startswith("image/")


def resolve_compress(gzip: bool | None, key: str, content_type: str) -> bool:
    # An explicit flag always wins; only the default yields to image types.
    if gzip is not None:
        return bool(gzip)
    return not is_image(key, content_type)


def resolve_access_policy(access_policy: str | None, default: str = DEFAULT_ACCESS_POLICY) -> str:
    policy = access_policy or default
    if policy not in ACCESS_POLICIES:
        allowed = ", ".join(sorted(ACCESS_POLICIES))
        raise ConfigurationError(f"Unknown access policy '{policy}' (expected one of: {allowed})")
    return policy


def resolve_storage_class(storage_class: str | None, default: str = DEFAULT_STORAGE_CLASS) -> str:
    if not storage_class:
        return default
    return STORAGE_CLASS_ALIASES.get(storage_class.lower(), storage_class.upper())


def _content_source(data: bytes | str | None, file: str | Path | None) -> ContentSource:
    if data is None and file is None:
        raise ConfigurationError("one of data or file is required")
    if data is not None and file is not None:
        raise ConfigurationError("data and file are mutually exclusive")

    if file is not None:
        path = Path(file)
        if not path.is_file():
            raise ConfigurationError(f"file not found: {path}")
        return FileRef(path=path)

    if isinstance(data, str):
        return InlineBytes(data=data.encode("utf-8"))
    return InlineBytes(data=bytes(data))


def build_item(
    name: str,
    *,
    base_path: str | None = None,
    data: bytes | str | None = None,
    file: str | Path | None = None,
    gzip: bool | None = None,
    ttl: int | None = None,
    cache_control: str | None = None,
    content_type: str | None = None,
    access_policy: str | None = None,
    storage_class: str | None = None,
    default_ttl: int = DEFAULT_TTL,
    default_access_policy: str = DEFAULT_ACCESS_POLICY,
    default_storage_class: str = DEFAULT_STORAGE_CLASS,
) -> Item:
    """Validate a publish request and resolve every piece of upload metadata.

    Raises ConfigurationError for a missing or doubled data source, a file
    that does not exist, an uninferrable content type, or an unknown access
    policy. The file itself is not read.
    """
    key = build_key(name, base_path)
    source = _content_source(data, file)
    resolved_type = resolve_content_type(key, content_type)

    item = Item(
        key=key,
        source=source,
        compress=resolve_compress(gzip, key, resolved_type),
        content_type=resolved_type,
        cache_control=resolve_cache_control(cache_control, ttl, default_ttl),
        access_policy=resolve_access_policy(access_policy, default_access_policy),
        storage_class=resolve_storage_class(storage_class, default_storage_class),
    )
    logger.debug("Built item %s (compress=%s type=%s)", item.key, item.compress, item.content_type)
    return item
