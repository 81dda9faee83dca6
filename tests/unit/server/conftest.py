"""Fixtures for serve-mode routing tests"""

import pytest

from mdserve.core.options import ExtensionConfig


@pytest.fixture(name="docs_root")
def docs_root_fixture(tmp_path):
    """A served root with a page, a directory index, and a file outside the root."""
    root = tmp_path / "root"
    (root / "notes").mkdir(parents=True)
    (root / "doc.md").write_text("---\ntitle: Doc\n---\n# Doc\n", encoding="utf-8")
    (root / "notes" / "index.md").write_text("# Notes\n", encoding="utf-8")
    (root / "notes" / "todo.markdown").write_text("- one\n", encoding="utf-8")
    (root / "empty").mkdir()
    (root / "image.png").write_bytes(b"\x89PNG")
    (tmp_path / "outside.md").write_text("# Secret\n", encoding="utf-8")
    return root


@pytest.fixture(name="config")
def config_fixture():
    return ExtensionConfig(front_matter="yaml")
