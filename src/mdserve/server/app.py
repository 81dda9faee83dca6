"""FastAPI application serving rendered Markdown from a root directory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, Response

from mdserve.core.options import ExtensionConfig
from mdserve.server.router import route


def request_path(raw_path: Optional[bytes], url_path: str) -> str:
    """Undecoded request path without the query; raw UTF-8 bytes are kept as text."""
    if not raw_path:
        return "/" + url_path
    return raw_path.decode("utf-8", errors="surrogateescape").split("?", 1)[0]


def create_app(root: Path, config: ExtensionConfig, index_file: str = "index.md") -> FastAPI:
    """Build the app; root and config are fixed for the lifetime of the process."""
    root = Path(root).resolve()
    app = FastAPI(
        title="mdserve",
        description="Markdown rendered to HTML on every request",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.root = root
    app.state.config = config

    # Sync handler: file reads run in the threadpool, one render per request.
    @app.get("/{url_path:path}")
    def serve(url_path: str, request: Request) -> Response:
        res = route(request_path(request.scope.get("raw_path"), url_path), root, config, index_file)
        return Response(content=res.body, status_code=res.status_code, media_type=res.media_type)

    return app
