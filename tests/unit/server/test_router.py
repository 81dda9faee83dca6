"""Unit tests for server/router.py"""

import json
import os
import tomllib
from pathlib import Path

import pytest
import yaml

from mdserve.exceptions import PathForbidden
from mdserve.server import router
from mdserve.server.router import normalize_url_path, resolve_request, route


# --- lexical resolution ---

@pytest.mark.parametrize("url, parts", [
    ("/", ()),
    ("/a/./b/../c.md", ("a", "c.md")),
    ("//a///b.md", ("a", "b.md")),
    ("/with%20space.md", ("with space.md",)),
    ("/a/..", ()),
])
def test_normalize_url_path(url, parts):
    assert normalize_url_path(url) == parts


@pytest.mark.parametrize("url", [
    "/../../etc/passwd",
    "/..",
    "/a/../../b.md",
    "/%2e%2e/secret.md",
    "/a/..%2F..%2Fb.md",
    "/..\\windows.md",
    "/a%00.md",
])
def test_normalize_rejects_escape(url):
    with pytest.raises(PathForbidden):
        normalize_url_path(url)


@pytest.mark.parametrize("url, candidates, fmt", [
    ("/", ((),), "html"),
    ("/doc.md", (("doc.md",),), "html"),
    ("/doc", (("doc.md",), ("doc",)), "html"),
    ("/a/doc.html", (("a", "doc.md"), ("a", "doc")), "html"),
    ("/doc.json", (("doc.md",), ("doc",)), "json"),
    ("/doc.YML", (("doc.md",), ("doc",)), "yaml"),
    ("/doc.toml", (("doc.md",), ("doc",)), "toml"),
    ("/v1.2", (("v1.2",),), "html"),
])
def test_resolve_request(url, candidates, fmt):
    """Candidates are computed from the URL alone, in lookup order."""
    request = resolve_request(url)
    assert request.candidates == candidates
    assert request.fmt == fmt


def test_forbidden_without_touching_filesystem(monkeypatch, config):
    """A root escape is answered with 403 before any path is stat'ed or resolved."""
    def boom(*args, **kwargs):
        raise AssertionError("filesystem was accessed")

    monkeypatch.setattr(router, "locate", boom)
    monkeypatch.setattr(Path, "stat", boom)
    monkeypatch.setattr(Path, "resolve", boom)

    res = route("/../../etc/passwd", Path("/srv/docs"), config)
    assert res.status_code == 403
    assert "403 Forbidden" in res.body


# --- routing against a real tree ---

def test_render_markdown_file(docs_root, config):
    res = route("/doc.md", docs_root, config)
    assert res.status_code == 200
    assert res.media_type.startswith("text/html")
    assert res.body == "<h1>Doc</h1>\n"


@pytest.mark.parametrize("url", ["/doc", "/doc.html"])
def test_extensionless_and_html_urls(docs_root, config, url):
    assert route(url, docs_root, config).body == "<h1>Doc</h1>\n"


@pytest.mark.parametrize("url", ["/notes", "/notes/", "/notes/index.md", "/notes/index.html"])
def test_directory_index(docs_root, config, url):
    res = route(url, docs_root, config)
    assert res.status_code == 200
    assert res.body == "<h1>Notes</h1>\n"


def test_markdown_suffix(docs_root, config):
    assert route("/notes/todo.markdown", docs_root, config).body == "<ul>\n<li>one</li>\n</ul>\n"


def test_root_without_index_is_not_found(docs_root, config):
    assert route("/", docs_root, config).status_code == 404


def test_custom_index_file(docs_root, config):
    (docs_root / "README.md").write_text("# Readme\n")
    res = route("/", docs_root, config, index_file="README.md")
    assert res.body == "<h1>Readme</h1>\n"


@pytest.mark.parametrize("url", ["/missing.md", "/missing", "/empty", "/image.png", "/doc.txt", "/notes/todo.md"])
def test_not_found(docs_root, config, url):
    res = route(url, docs_root, config)
    assert res.status_code == 404
    assert "404 Not Found" in res.body


def test_json_payload(docs_root, config):
    res = route("/doc.json", docs_root, config)
    assert res.status_code == 200
    assert res.media_type == "application/json"
    assert json.loads(res.body) == {"front_matter": {"title": "Doc"}, "html": "<h1>Doc</h1>\n"}


def test_yaml_payload_for_directory(docs_root, config):
    res = route("/notes.yaml", docs_root, config)
    assert res.media_type == "application/yaml"
    assert yaml.safe_load(res.body) == {"front_matter": {}, "html": "<h1>Notes</h1>\n"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_escape_is_forbidden(docs_root, config):
    """A link inside the root that points outside it is refused."""
    (docs_root / "link.md").symlink_to(docs_root.parent / "outside.md")
    assert route("/link.md", docs_root, config).status_code == 403


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_inside_root_is_served(docs_root, config):
    (docs_root / "alias.md").symlink_to(docs_root / "doc.md")
    assert route("/alias.md", docs_root, config).status_code == 200


def test_invalid_utf8_is_server_error(docs_root, config):
    (docs_root / "bad.md").write_bytes(b"\xff\xfe\xfa")
    assert route("/bad.md", docs_root, config).status_code == 500


def test_read_failure_is_server_error(docs_root, config, monkeypatch):
    def denied(path, cfg):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(router, "render_file", denied)
    assert route("/doc.md", docs_root, config).status_code == 500


def test_strict_front_matter_error_is_server_error(docs_root):
    from mdserve.core.options import ExtensionConfig
    (docs_root / "broken.md").write_text("---\ntitle: x\n# no closer\n")
    config = ExtensionConfig(front_matter="yaml", strict_front_matter=True)
    assert route("/broken.md", docs_root, config).status_code == 500


def test_file_is_rerendered_on_every_request(docs_root, config):
    """Edits on disk show up on the next request."""
    assert route("/doc.md", docs_root, config).body == "<h1>Doc</h1>\n"
    (docs_root / "doc.md").write_text("# Changed\n")
    assert route("/doc.md", docs_root, config).body == "<h1>Changed</h1>\n"


def test_toml_payload(docs_root, config):
    res = route("/doc.toml", docs_root, config)
    assert res.status_code == 200
    assert res.media_type == "application/toml"
    assert tomllib.loads(res.body) == {"front_matter": {"title": "Doc"}, "html": "<h1>Doc</h1>\n"}


def test_unicode_file_name(docs_root, config):
    (docs_root / "café.md").write_text("# Café\n", encoding="utf-8")
    assert route("/caf%C3%A9.md", docs_root, config).status_code == 200
    assert route("/café.md", docs_root, config).status_code == 200
