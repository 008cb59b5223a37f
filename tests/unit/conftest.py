"""Unit test conftest — no network or real bucket required."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "events.xml"
    path.write_bytes(b"<events><event id='1'/></events>")
    return path


@pytest.fixture(autouse=True)
def _clean_publisher_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PUBLISHER_BUCKET",
        "PUBLISHER_BASE_PATH",
        "PUBLISHER_WORKERS",
        "PUBLISHER_DEFAULT_TTL",
        "PUBLISHER_ACCESS_POLICY",
        "PUBLISHER_STORAGE_CLASS",
        "PUBLISHER_UPLOAD_TIMEOUT",
        "PUBLISHER_CREDENTIALS_FILE",
        "GOOGLE_CLOUD_PROJECT",
    ):
        monkeypatch.delenv(name, raising=False)
