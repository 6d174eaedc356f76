"""Shared fixtures for deploy tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from s3deploy.storage import ObjectStore
from s3deploy.utils.config import ENV_VARIABLES
from tests.helpers import RecordingUI, make_store


@pytest.fixture
def ui() -> RecordingUI:
    return RecordingUI()


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock()
    client.put_object.return_value = {"ETag": '"abc123"'}
    client.get_bucket_location.return_value = {"LocationConstraint": "us-east-1"}
    return client


@pytest.fixture
def store(s3_client: MagicMock) -> ObjectStore:
    return make_store(s3_client)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Build output with a.js (100b) and b.css (50b)."""
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "a.js").write_bytes(b"x" * 100)
    (dist / "b.css").write_bytes(b"y" * 50)
    return dist


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path) -> Path:
    """Working directory without .env and no deploy variables set."""
    for variable in ENV_VARIABLES:
        # set first so anything loaded from .env during the test is undone
        monkeypatch.setenv(variable, "")
        monkeypatch.delenv(variable)
    monkeypatch.chdir(tmp_path)
    return tmp_path
