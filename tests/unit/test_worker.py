"""Unit tests for the upload worker — retry discipline and body transforms."""

from __future__ import annotations

import gzip
import io
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bucket_publisher.errors import UploadError
from bucket_publisher.items import build_item
from bucket_publisher.work_queue import WorkQueue
from bucket_publisher.worker import Sink, UploadWorker


def _worker(queue, storage, sink: io.StringIO, **kw) -> UploadWorker:
    return UploadWorker(queue, storage, "test-bucket", sink=Sink(sink), **kw)


def _closed_queue(*items) -> WorkQueue:
    q = WorkQueue()
    for it in items:
        q.push(it)
    q.close()
    return q


class TestBodies:
    def test_gzips_by_default(self, storage, sink):
        q = _closed_queue(build_item("myfile.txt", data=b"1234"))
        _worker(q, storage, sink).run()

        call = storage.calls[0]
        assert gzip.decompress(call["body"]) == b"1234"
        assert call["content_encoding"] == "gzip"

    def test_uncompressed_body_is_byte_identical(self, storage, sink):
        q = _closed_queue(build_item("myfile.txt", data=b"1234", gzip=False))
        _worker(q, storage, sink).run()

        call = storage.calls[0]
        assert call["body"] == b"1234"
        assert "content_encoding" not in call

    def test_image_is_not_compressed(self, storage, sink):
        q = _closed_queue(build_item("myfile.jpg", data=b"1234"))
        _worker(q, storage, sink).run()
        assert storage.calls[0]["body"] == b"1234"

    def test_file_reference_read_at_upload(self, storage, sink, sample_file: Path):
        item = build_item("events.xml", file=sample_file)
        sample_file.write_bytes(b"<changed/>")
        _worker(_closed_queue(item), storage, sink).run()
        assert gzip.decompress(storage.calls[0]["body"]) == b"<changed/>"

    def test_metadata_passed_through(self, storage, sink):
        item = build_item(
            "myfile.txt",
            data=b"1",
            cache_control="private, max-age=0",
            access_policy="private",
            storage_class="nearline",
        )
        _worker(_closed_queue(item), storage, sink).run()
        call = storage.calls[0]
        assert call["bucket"] == "test-bucket"
        assert call["key"] == "myfile.txt"
        assert call["content_type"] == "text/plain"
        assert call["cache_control"] == "private, max-age=0"
        assert call["access_policy"] == "private"
        assert call["storage_class"] == "NEARLINE"


class TestRetry:
    def test_success_on_retry_records_once(self, make_storage, sink):
        storage = make_storage(failures={"myfile.txt": 1})
        q = _closed_queue(build_item("myfile.txt", data=b"1234"))
        results = _worker(q, storage, sink).run()

        assert len(storage.calls) == 2
        assert storage.calls[0]["body"] == storage.calls[1]["body"]
        assert [r.status for r in results] == ["uploaded"]
        assert results[0].attempts == 2
        assert sink.getvalue().count("Wrote ") == 1

    def test_two_failures_recorded_as_failed(self, make_storage, sink):
        storage = make_storage(failures={"bad.txt": 2})
        q = _closed_queue(build_item("bad.txt", data=b"x"), build_item("good.txt", data=b"y"))
        results = _worker(q, storage, sink).run()

        by_key = {r.item.key: r for r in results}
        assert by_key["bad.txt"].status == "failed"
        assert by_key["bad.txt"].attempts == 2
        assert "ConnectionError" in (by_key["bad.txt"].error_message or "")
        assert by_key["good.txt"].ok
        assert "bad.txt" not in sink.getvalue()

    def test_fail_fast_propagates(self, make_storage, sink):
        storage = make_storage(failures={"bad.txt": 2})
        q = _closed_queue(build_item("bad.txt", data=b"x"))
        with pytest.raises(UploadError, match="bad.txt") as exc_info:
            _worker(q, storage, sink, fail_fast=True).run()
        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.cause, ConnectionError)

    def test_never_more_than_two_attempts(self, sink):
        storage = MagicMock()
        storage.put_object.side_effect = TimeoutError("slow")
        q = _closed_queue(build_item("a.txt", data=b"x"))
        _worker(q, storage, sink).run()
        assert storage.put_object.call_count == 2


class TestResolveFailure:
    def test_deleted_file_fails_at_resolve_time(self, storage, sink, sample_file: Path):
        item = build_item("events.xml", file=sample_file)
        sample_file.unlink()
        results = _worker(_closed_queue(item), storage, sink).run()

        assert results[0].status == "failed"
        assert results[0].attempts == 0
        assert storage.calls == []


class TestDrain:
    def test_polling_worker_stops_on_empty(self, storage, sink):
        q = WorkQueue()
        q.push(build_item("a.txt", data=b"1"))
        results = _worker(q, storage, sink, block=False).run()
        assert len(results) == 1
        assert not q.closed

    def test_observability_line(self, storage, sink):
        _worker(_closed_queue(build_item("dir/a b.txt", data=b"1")), storage, sink).run()
        line = sink.getvalue().strip()
        assert line.startswith("Wrote https://test-bucket.storage.googleapis.com/dir/a%20b.txt with {")
        assert "'cache_control': 'max-age=5'" in line


class TestSink:
    def test_logger_target(self, caplog):
        log = logging.getLogger("test.sink")
        with caplog.at_level(logging.INFO, logger="test.sink"):
            Sink(log).emit("Wrote x")
        assert "Wrote x" in caplog.text

    def test_logger_target_carries_run_id_and_url(self, storage, caplog):
        log = logging.getLogger("test.sink")
        q = _closed_queue(build_item("a.txt", data=b"1"))
        worker = UploadWorker(q, storage, "test-bucket", sink=Sink(log), run_id="r1")
        with caplog.at_level(logging.INFO, logger="test.sink"):
            worker.run()
        (record,) = [r for r in caplog.records if r.name == "test.sink"]
        assert record.run_id == "r1"
        assert record.url == "https://test-bucket.storage.googleapis.com/a.txt"

    def test_broken_sink_still_reports_uploaded(self, storage, caplog):
        target = MagicMock()
        target.write.side_effect = ValueError("I/O operation on closed file.")
        q = _closed_queue(build_item("a.txt", data=b"1"))

        with caplog.at_level(logging.WARNING, logger="bucket_publisher.worker"):
            (result,) = UploadWorker(q, storage, "test-bucket", sink=Sink(target)).run()

        assert result.status == "uploaded"
        assert result.attempts == 1
        assert len(storage.calls) == 1
        assert "Could not write upload record for a.txt" in caplog.text
