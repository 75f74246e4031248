import pytest
from fastapi.testclient import TestClient

from xpgraph.settings import settings
from xpgraph.server import app


@pytest.fixture(autouse=True)
def inline_sandbox(monkeypatch):
    """Run formulas in-process unless a test opts into the child process."""
    monkeypatch.setattr(settings, "SANDBOX_MODE", "inline")
    monkeypatch.setattr(settings, "XP_MAX_CEILING", 100_000)
    monkeypatch.setattr(settings, "XP_MAX_POLICY", "reject")
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", None)


@pytest.fixture
def client():
    return TestClient(app)
