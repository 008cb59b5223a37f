from __future__ import annotations

import gzip
import logging
import sys
from threading import Lock
from typing import TextIO

from bucket_publisher.errors import UploadError
from bucket_publisher.gcs import StorageClient, gs_uri
from bucket_publisher.logging_config import NO_RUN, run_logger
from bucket_publisher.types import Item, UploadResult, resolve_content
from bucket_publisher.work_queue import EMPTY, WorkQueue

logger = logging.getLogger(__name__)

# first attempt plus one immediate retry, no backoff
MAX_ATTEMPTS = 2


class Sink:
    """Line-oriented destination for upload records.

    Wraps a text stream or a ``logging.Logger``; writes are serialised so
    records from concurrent workers never interleave.
    """

    def __init__(self, target: TextIO | logging.Logger | None = None) -> None:
        self._target = sys.stdout if target is None else target
        self._lock = Lock()

    def emit(self, line: str, **extra: object) -> None:
        with self._lock:
            if isinstance(self._target, logging.Logger):
                self._target.info(line, extra=extra)
            else:
                self._target.write(line + "\n")
                flush = getattr(self._target, "flush", None)
                if flush is not None:
                    flush()


def gzip_bytes(data: bytes) -> bytes:
    return gzip.compress(data, mtime=0)


class UploadWorker:
    """Drain a work queue into a storage client, one item at a time."""

    def __init__(
        self,
        queue: WorkQueue,
        storage: StorageClient,
        bucket: str,
        *,
        sink: Sink,
        worker_id: int = 0,
        block: bool = True,
        fail_fast: bool = False,
        run_id: str | None = None,
    ) -> None:
        self._queue = queue
        self._storage = storage
        self._bucket = bucket
        self._sink = sink
        self.worker_id = worker_id
        self._block = block
        self._fail_fast = fail_fast
        self._run_id = run_id or NO_RUN
        self._log = run_logger(logger, run_id, worker_id=worker_id)

    def run(self) -> list[UploadResult]:
        results: list[UploadResult] = []
        while True:
            item = self._queue.pop() if self._block else self._queue.try_pop()
            if item is EMPTY:
                break
            results.append(self.process(item))
        self._log.debug("Worker %d drained queue after %d item(s)", self.worker_id, len(results))
        return results

    def process(self, item: Item) -> UploadResult:
        try:
            body = resolve_content(item.source)
        except OSError as e:
            # File vanished or became unreadable between push and upload
            err = f"{type(e).__name__}: {e}"
            self._log.error("Could not read content for %s :: %s", item.key, err)
            if self._fail_fast:
                raise UploadError(item.key, 0, e) from e
            return UploadResult(item=item, status="failed", attempts=0, error_message=err)

        write_opts = item.write_options()
        if item.compress:
            body = gzip_bytes(body)

        last_err: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                self._storage.put_object(self._bucket, item.key, body, **write_opts)
            except Exception as e:  # backstop against transient store errors
                last_err = e
                self._log.warning(
                    "Upload failed (attempt %d/%d): %s :: %s: %s",
                    attempt,
                    MAX_ATTEMPTS,
                    item.key,
                    type(e).__name__,
                    e,
                )
                continue

            url = self._storage.object_url(self._bucket, item.key)
            try:
                self._sink.emit(f"Wrote {url} with {write_opts!r}", run_id=self._run_id, url=url)
            except Exception:
                # object is already stored; still reported as uploaded
                self._log.warning("Could not write upload record for %s", item.key, exc_info=True)
            self._log.debug("Uploaded %s on attempt %d", gs_uri(self._bucket, item.key), attempt)
            return UploadResult(item=item, status="uploaded", attempts=attempt, url=url)

        assert last_err is not None
        self._log.error("Giving up on %s after %d attempt(s)", item.key, MAX_ATTEMPTS)
        if self._fail_fast:
            raise UploadError(item.key, MAX_ATTEMPTS, last_err) from last_err
        return UploadResult(
            item=item,
            status="failed",
            attempts=MAX_ATTEMPTS,
            error_message=f"{type(last_err).__name__}: {last_err}",
        )
