from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bucket-publisher",
        description="Upload files to a Cloud Storage bucket through a worker pool",
    )

    p.add_argument("files", nargs="+", help="Local files to publish (keyed by basename)")
    p.add_argument(
        "--bucket",
        default=None,
        help="Target bucket (default from env PUBLISHER_BUCKET)",
    )
    p.add_argument("--base-path", default=None, help="Prefix prepended to every key")
    p.add_argument(
        "--name",
        default=None,
        help="Key name to use instead of the basename (single file only)",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=0,
        help="Override PUBLISHER_WORKERS",
    )
    p.add_argument("--no-gzip", action="store_true", help="Upload bodies uncompressed")

    cache = p.add_mutually_exclusive_group()
    cache.add_argument("--ttl", type=int, default=None, help="Cache-Control max-age in seconds")
    cache.add_argument("--cache-control", default=None, help="Literal Cache-Control header")

    p.add_argument("--content-type", default=None, help="Force Content-Type (xml, html, text or a MIME type)")
    p.add_argument("--acl", default=None, help="Access policy, e.g. public-read or private")
    p.add_argument("--storage-class", default=None, help="Storage class, e.g. STANDARD or NEARLINE")
    p.add_argument("--quiet", action="store_true", help="Do not print a line per uploaded object")
    p.add_argument("--log-level", default="INFO", help="Python logging level (INFO, DEBUG, ...)")
    return p
