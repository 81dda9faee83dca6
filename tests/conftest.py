"""Root test configuration: isolate tests from MDSERVE_* settings in the environment"""

import os

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove MDSERVE_* env vars so the caller's environment never leaks into settings."""
    for name in list(os.environ):
        if name.startswith("MDSERVE_"):
            monkeypatch.delenv(name, raising=False)
