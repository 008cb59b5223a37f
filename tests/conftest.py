"""Shared test fixtures for the bucket-publisher test suite."""

from __future__ import annotations

import io
from collections.abc import Callable
from threading import Lock
from typing import Any

import pytest

from bucket_publisher.gcs import object_url


class FakeStorage:
    """In-memory StorageClient that records every put call.

    ``failures`` maps a key to the number of times its put should raise
    before succeeding. ``on_put`` is called with each key before it is stored.
    """

    def __init__(
        self,
        *,
        buckets: set[str] | None = None,
        failures: dict[str, int] | None = None,
        on_put: Callable[[str], None] | None = None,
    ) -> None:
        self.buckets = buckets if buckets is not None else {"test-bucket"}
        self.failures = dict(failures or {})
        self.calls: list[dict[str, Any]] = []
        self.objects: dict[str, dict[str, Any]] = {}
        self.on_put = on_put
        self._lock = Lock()

    def bucket_exists(self, bucket_name: str) -> bool:
        return bucket_name in self.buckets

    def put_object(self, bucket: str, key: str, body: bytes, **opts: Any) -> None:
        if self.on_put is not None:
            self.on_put(key)
        with self._lock:
            self.calls.append({"bucket": bucket, "key": key, "body": body, **opts})
            remaining = self.failures.get(key, 0)
            if remaining:
                self.failures[key] = remaining - 1
                raise ConnectionError(f"transient failure for {key}")
            self.objects[key] = {"body": body, **opts}

    def object_url(self, bucket: str, key: str) -> str:
        return object_url(bucket, key)


@pytest.fixture
def test_bucket() -> str:
    return "test-bucket"


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def sink() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_storage() -> type[FakeStorage]:
    return FakeStorage
