from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TextIO

from bucket_publisher.cli import build_parser
from bucket_publisher.config import PublisherConfig
from bucket_publisher.errors import ConfigurationError
from bucket_publisher.logging_config import setup_logging, uploads_logger
from bucket_publisher.publisher import Publisher


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level.upper())
    logger = logging.getLogger("bucket_publisher")

    if args.name and len(args.files) > 1:
        parser.error("--name can only be used with a single file")

    try:
        cfg = PublisherConfig.from_env()
        # CLI overrides
        if args.workers and args.workers > 0:
            cfg = replace(cfg, workers=args.workers)
        cfg.validate()

        bucket = args.bucket or cfg.bucket
        if not bucket:
            parser.error("a bucket is required (--bucket or PUBLISHER_BUCKET)")

        sink: logging.Logger | TextIO = sys.stdout
        if args.quiet:
            sink = uploads_logger(quiet=True)

        publisher = Publisher(bucket, config=cfg, base_path=args.base_path, sink=sink)
        for f in args.files:
            path = Path(f)
            publisher.push(
                args.name or path.name,
                file=path,
                gzip=False if args.no_gzip else None,
                ttl=args.ttl,
                cache_control=args.cache_control,
                content_type=args.content_type,
                access_policy=args.acl,
                storage_class=args.storage_class,
            )
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    report = publisher.run()
    for r in report.failed:
        logger.error("FAILED %s :: %s", r.item.key, r.error_message)

    logger.info("DONE totals=%s", report.counts())
    return 0 if report.ok else 2


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
