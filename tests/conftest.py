"""Test bootstrap.

Ensures `src/` is importable, sends logs and file directories to a
temporary folder and provides HTTP doubles for the image server.
"""

from __future__ import annotations

import copy
import sys
import tempfile
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def _config_manager():
    from iiif_manifest_core.config_manager import get_config_manager

    return get_config_manager()


def pytest_configure():
    """Redirect session logging to a temporary folder before test collection."""
    cm = _config_manager()
    session_logs_dir = Path(tempfile.mkdtemp(prefix="iiif-manifest-pytest-logs-")) / "logs"
    cm.set_path("logs_dir", session_logs_dir)

    from iiif_manifest_core import logger as logger_mod

    logger_mod.setup_logging(cm)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, tmp_path_factory):
    """Point logs and file directories at `tmp_path` and restore settings afterwards."""
    from iiif_manifest_core import logger as logger_mod

    cm = _config_manager()
    original = copy.deepcopy(cm.data)

    cm.set_path("logs_dir", tmp_path_factory.mktemp("logs"))
    cm.set_path("public_files_dir", tmp_path / "public")
    cm.set_path("private_files_dir", tmp_path / "private")
    logger_mod.setup_logging(cm)

    yield

    logger_mod.close_handlers()
    cm.data.clear()
    cm.data.update(original)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else repr(payload))

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self._payload is None:
            raise requests.exceptions.JSONDecodeError("Expecting value", self.text, 0)
        return self._payload


class FakeSession:
    """Stands in for `requests.Session`; maps URLs to responses or exceptions."""

    def __init__(self, responses=None, default=None):
        self.responses = dict(responses or {})
        self.default = default
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, dict(headers or {})))
        outcome = self.responses.get(url, self.default)
        if outcome is None:
            raise requests.ConnectionError(f"Connection refused: {url}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse
