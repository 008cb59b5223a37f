"""Logging for publish runs.

Every record carries a ``run_id`` so the interleaved lines of concurrent
workers can be grouped per run. Upload records written to a logger sink go
through the same handler, so on Cloud Run they land as structured JSON with
the object URL and metadata alongside.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import MutableMapping
from typing import Any

from pythonjsonlogger.json import JsonFormatter

UPLOADS_LOGGER = "bucket_publisher.uploads"
NO_RUN = "-"


class RunIdFilter(logging.Filter):
    """Give records logged outside a run a placeholder ``run_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = NO_RUN
        return True


class RunLogger(logging.LoggerAdapter):
    """Attach the run id (and optional worker id) to every record."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def run_logger(logger: logging.Logger, run_id: str | None, **extra: Any) -> RunLogger:
    return RunLogger(logger, {"run_id": run_id or NO_RUN, **extra})


def build_formatter(*, json_output: bool) -> logging.Formatter:
    if json_output:
        # Cloud Logging reads the level from "severity"
        return JsonFormatter(
            "%(levelname)s %(message)s %(name)s %(run_id)s %(threadName)s",
            rename_fields={"levelname": "severity", "name": "logger"},
        )
    return logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)s run=%(run_id)s [%(threadName)s]  %(message)s",
        datefmt="%H:%M:%S",
    )


def setup_logging(*, level: str = "INFO", json_output: bool | None = None) -> logging.Handler:
    """Replace root handlers with one stream handler and return it.

    ``json_output`` defaults to True when ``K_SERVICE`` is set (Cloud Run).
    """
    if json_output is None:
        json_output = bool(os.getenv("K_SERVICE"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.addFilter(RunIdFilter())
    handler.setFormatter(build_formatter(json_output=json_output))
    root.addHandler(handler)
    return handler


def uploads_logger(*, quiet: bool = False) -> logging.Logger:
    """Logger used as the upload sink when records should join the log stream."""
    log = logging.getLogger(UPLOADS_LOGGER)
    log.setLevel(logging.WARNING if quiet else logging.INFO)
    return log


def generate_run_id() -> str:
    return uuid.uuid4().hex[:12]
