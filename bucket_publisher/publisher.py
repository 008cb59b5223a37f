"""Publisher: queue named payloads, then upload them with a worker pool.

Usage::

    publisher = Publisher("my-bucket", base_path="world_cup_2010")
    publisher.push("events.xml", data=b"<events/>")
    publisher.push("logo.png", file="assets/logo.png")
    report = publisher.run()

or, block style, where ``run`` is called on exit::

    with Publisher.publish("my-bucket") as p:
        p.push("test.txt", data="123abc")
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TextIO

from bucket_publisher.config import PublisherConfig
from bucket_publisher.errors import ConfigurationError
from bucket_publisher.gcs import GcsStorage, StorageClient
from bucket_publisher.items import build_item
from bucket_publisher.logging_config import generate_run_id, run_logger
from bucket_publisher.types import Item, PublishReport, UploadResult
from bucket_publisher.work_queue import WorkQueue
from bucket_publisher.worker import Sink, UploadWorker

logger = logging.getLogger(__name__)


class Publisher:
    def __init__(
        self,
        bucket_name: str,
        *,
        storage: StorageClient | None = None,
        config: PublisherConfig | None = None,
        base_path: str | None = None,
        sink: TextIO | logging.Logger | None = None,
        workers: int | None = None,
        blocking: bool = True,
        fail_fast: bool = False,
    ) -> None:
        """
        Args:
            bucket_name: Target bucket; checked for existence immediately.
            storage: Object-store client. Built from ``config`` when omitted.
            config: Defaults for workers, ttl, access policy, storage class.
            base_path: Prepended to every pushed name as ``base_path/name``.
            sink: Stream or logger receiving one "Wrote ..." line per upload.
                Defaults to stdout.
            workers: Pool size; overrides ``config.workers``.
            blocking: Workers wait on a closed queue instead of polling.
            fail_fast: Raise the first item failure out of ``run`` instead of
                reporting it.
        """
        cfg = config or PublisherConfig()
        cfg.validate()

        if not bucket_name or not bucket_name.strip():
            raise ConfigurationError("bucket_name is required")

        self.bucket_name = bucket_name
        self.base_path = (base_path if base_path is not None else cfg.base_path) or None
        self.workers_to_use = workers if workers is not None else cfg.workers
        if self.workers_to_use < 1:
            raise ConfigurationError("workers must be >= 1")

        self._cfg = cfg
        self._sink = Sink(sink)
        self._blocking = blocking
        self._fail_fast = fail_fast
        self._queue = WorkQueue()
        self.report: PublishReport | None = None

        self._storage: StorageClient = storage or GcsStorage.from_config(cfg)
        if not self._storage.bucket_exists(bucket_name):
            raise ConfigurationError(
                f"{bucket_name} doesn't seem to be a valid bucket for the configured credentials"
            )

    @classmethod
    @contextmanager
    def publish(cls, bucket_name: str, **opts: Any) -> Iterator[Publisher]:
        """Yield a publisher and run it when the block exits cleanly."""
        publisher = cls(bucket_name, **opts)
        yield publisher
        publisher.run()

    def push(
        self,
        name: str,
        *,
        data: bytes | str | None = None,
        file: str | Path | None = None,
        gzip: bool | None = None,
        ttl: int | None = None,
        cache_control: str | None = None,
        content_type: str | None = None,
        access_policy: str | None = None,
        storage_class: str | None = None,
    ) -> Item:
        """Queue one payload. Metadata errors raise here, not during ``run``."""
        item = build_item(
            name,
            base_path=self.base_path,
            data=data,
            file=file,
            gzip=gzip,
            ttl=ttl,
            cache_control=cache_control,
            content_type=content_type,
            access_policy=access_policy,
            storage_class=storage_class,
            default_ttl=self._cfg.default_ttl,
            default_access_policy=self._cfg.access_policy,
            default_storage_class=self._cfg.storage_class,
        )
        self._queue.push(item)
        return item

    @property
    def pending(self) -> int:
        return len(self._queue)

    def run(self) -> PublishReport:
        """Upload everything queued so far and block until every worker exits.

        The current queue is closed and handed to the workers; later pushes go
        to a fresh queue for the next run.
        """
        queue, self._queue = self._queue, WorkQueue()
        queue.close()

        self.report = None
        run_id = generate_run_id()
        log = run_logger(logger, run_id)
        log.info(
            "Publishing %d item(s) to %s with %d worker(s)",
            len(queue),
            self.bucket_name,
            self.workers_to_use,
        )

        with ThreadPoolExecutor(
            max_workers=self.workers_to_use,
            thread_name_prefix=f"publisher-{run_id}",
        ) as pool:
            futures = [
                pool.submit(
                    UploadWorker(
                        queue,
                        self._storage,
                        self.bucket_name,
                        sink=self._sink,
                        worker_id=i,
                        block=self._blocking,
                        fail_fast=self._fail_fast,
                        run_id=run_id,
                    ).run
                )
                for i in range(self.workers_to_use)
            ]

        results: list[UploadResult] = []
        first_error: BaseException | None = None
        for f in futures:
            exc = f.exception()
            if exc is not None:
                first_error = first_error or exc
                continue
            results.extend(f.result())

        if first_error is not None:
            log.error("Run aborted: %s", first_error)
            raise first_error

        self.report = PublishReport(results=results)
        log.info("Run done: %s", self.report.counts())
        return self.report

    def __repr__(self) -> str:
        return f"<Publisher:{self.bucket_name}>"
