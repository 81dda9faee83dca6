"""Request routing: URL path -> Markdown file under the served root -> response.

Every request is resolved lexically first (percent-decoding and dot-segment
collapsing), so a path that escapes the root is rejected before the
filesystem is consulted. Files are re-read and re-rendered on every request.
"""

import logging
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from mdserve.core.export import serialize
from mdserve.core.models import PayloadFormat, RenderResult
from mdserve.core.options import ExtensionConfig
from mdserve.core.parse import MD_EXTENSIONS, is_markdown
from mdserve.core.pipeline import render_file
from mdserve.exceptions import (
    IoFailure,
    MalformedFrontMatterStructural,
    PathForbidden,
    PathNotFound,
    RoutingError,
)


logger = logging.getLogger(__name__)

HTML_TYPE = "text/html; charset=utf-8"
MEDIA_TYPES = {
    PayloadFormat.html: HTML_TYPE,
    PayloadFormat.json: "application/json",
    PayloadFormat.yaml: "application/yaml",
    PayloadFormat.toml: "application/toml",
}
PAYLOAD_SUFFIXES = {
    ".html": PayloadFormat.html,
    ".json": PayloadFormat.json,
    ".yaml": PayloadFormat.yaml,
    ".yml":  PayloadFormat.yaml,
    ".toml": PayloadFormat.toml,
}


@dataclass(frozen=True)
class RouteResponse:
    status_code: int
    body:        str
    media_type:  str = HTML_TYPE


@dataclass(frozen=True)
class ResolvedRequest:
    """Lexically resolved request: candidate paths relative to root, in lookup order."""
    url_path:   str
    candidates: tuple[tuple[str, ...], ...]
    fmt:        PayloadFormat = PayloadFormat.html


def normalize_url_path(url_path: str) -> tuple[str, ...]:
    """Percent-decode and collapse '.'/'..' segments; raises PathForbidden on root escape."""
    decoded = unquote(url_path)
    if "\x00" in decoded:
        raise PathForbidden(f"{url_path!r} contains a NUL byte")

    parts: list[str] = []
    for segment in decoded.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise PathForbidden(f"{url_path!r} escapes the served root")
            parts.pop()
        else:
            parts.append(segment)
    return tuple(parts)


def resolve_request(url_path: str) -> ResolvedRequest:
    """Map a URL path onto candidate source paths without touching the filesystem."""
    parts = normalize_url_path(url_path)
    if not parts:
        return ResolvedRequest(url_path, ((),))

    parent, name = parts[:-1], parts[-1]
    suffix = PurePosixPath(name).suffix.lower()
    if suffix in MD_EXTENSIONS:
        return ResolvedRequest(url_path, (parts,))
    if suffix in PAYLOAD_SUFFIXES:
        stem = PurePosixPath(name).stem
        return ResolvedRequest(url_path, (parent + (f"{stem}.md",), parent + (stem,)), PAYLOAD_SUFFIXES[suffix])
    if not suffix:
        return ResolvedRequest(url_path, (parent + (f"{name}.md",), parts))
    # dotted names only resolve as directories
    return ResolvedRequest(url_path, (parts,))


def locate(request: ResolvedRequest, root: Path, index_file: str = "index.md") -> Path:
    """Find the first existing Markdown candidate; directories fall back to index_file."""
    real_root = root.resolve()
    for parts in request.candidates:
        path = real_root.joinpath(*parts)
        try:
            if path.is_dir():
                path = path / index_file
            if not (path.is_file() and is_markdown(path)):
                continue
            real = path.resolve()
        except OSError as e:
            raise PathNotFound(f"Cannot stat {request.url_path!r}: {e}") from e
        if not real.is_relative_to(real_root) or real == real_root:
            raise PathForbidden(f"{request.url_path!r} resolves outside the served root")
        return real
    raise PathNotFound(f"No Markdown source for {request.url_path!r}")


def _render(path: Path, config: ExtensionConfig) -> RenderResult:
    try:
        return render_file(path, config)
    except (OSError, UnicodeDecodeError) as e:
        raise IoFailure(f"Could not read {path}: {e}") from e
    except MalformedFrontMatterStructural as e:
        raise RoutingError(f"Could not render {path}: {e}") from e


def _error_page(status_code: int) -> str:
    phrase = HTTPStatus(status_code).phrase
    return f"<!DOCTYPE html>\n<title>{status_code} {phrase}</title>\n<h1>{status_code} {phrase}</h1>\n"


def route(
    url_path: str,
    root: Path,
    config: ExtensionConfig,
    index_file: str = "index.md",
    ) -> RouteResponse:
    """Resolve, read, and render one request; routing failures become error responses."""
    try:
        request = resolve_request(url_path)
        path = locate(request, Path(root), index_file)
        result = _render(path, config)
    except RoutingError as e:
        log = logger.error if e.status_code >= 500 else logger.info
        log("GET %s -> %d (%s)", url_path, e.status_code, e)
        return RouteResponse(e.status_code, _error_page(e.status_code))

    try:
        body = serialize(result, request.fmt)
    except TypeError as e:
        logger.error("GET %s -> 500 (%s)", url_path, e)
        return RouteResponse(500, _error_page(500))
    logger.info("GET %s -> 200 (%s)", url_path, path.name)
    return RouteResponse(200, body, MEDIA_TYPES[request.fmt])
