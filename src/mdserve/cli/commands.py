"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
import uvicorn

from mdserve.config import Settings, load_config
from mdserve.core.export import serialize
from mdserve.core.models import FrontMatterKind, PayloadFormat
from mdserve.core.options import ExtensionConfig
from mdserve.core.pipeline import render_file, run_convert
from mdserve.exceptions import ConfigurationError, MalformedFrontMatterStructural
from mdserve.server.app import create_app


ConfigOpt      = Annotated[Optional[str], typer.Option("--config", "-c", help="JSON, TOML or YAML config file")]
TablesOpt      = Annotated[bool, typer.Option("--tables", "-t", help="Enable tables")]
FootnotesOpt   = Annotated[bool, typer.Option("--footnotes", "-f", help="Enable footnotes")]
StrikeOpt      = Annotated[bool, typer.Option("--strikethrough", "-s", help="Enable strikethrough")]
TasklistsOpt   = Annotated[bool, typer.Option("--tasklists", "-l", help="Enable task lists")]
SmartOpt       = Annotated[bool, typer.Option("--smart-punctuation", "-p", help="Enable smart punctuation")]
AttrsOpt       = Annotated[bool, typer.Option("--header-attributes", "-a", help="Enable {#id .class} heading attributes")]
EmojiOpt       = Annotated[bool, typer.Option("--emoji-shortcodes", "-e", help="Replace :shortcode: with emoji")]
FrontMatterOpt = Annotated[Optional[FrontMatterKind], typer.Option("--front-matter", "-m", help="Front matter format to extract")]
CollapsibleOpt = Annotated[Optional[str], typer.Option("--collapsible-headers", "-k", help="Wrap headings in <details>: h2, h2+, h2,h4 or h5:text (matched against the heading source)")]


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(config: Optional[str], overrides: dict) -> tuple[Settings, ExtensionConfig]:
    """Load settings and build the extension config with standard CLI error handling."""
    try:
        settings = load_config(config, overrides=overrides)
        extensions = settings.extension_config()
    except ConfigurationError as e:
        _fail(str(e))
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    return settings, extensions


def _extension_overrides(**flags) -> dict:
    """Only set flags override file/env settings; unset flags stay None."""
    return {k: (v or None) if isinstance(v, bool) else v for k, v in flags.items()}


def convert_cmd(
    path: Annotated[str, typer.Argument(help="Markdown file or directory to convert")],
    out: Annotated[Optional[str], typer.Option("--out-dir", "-o", help="Output directory (file input prints to stdout when omitted)")] = None,
    fmt: Annotated[Optional[PayloadFormat], typer.Option("--format", "-F", help="Output format: html, or the {front_matter, html} payload as json, yaml or toml")] = None,
    config: ConfigOpt = None,
    tables: TablesOpt = False,
    footnotes: FootnotesOpt = False,
    strikethrough: StrikeOpt = False,
    tasklists: TasklistsOpt = False,
    smart_punctuation: SmartOpt = False,
    header_attributes: AttrsOpt = False,
    emoji_shortcodes: EmojiOpt = False,
    front_matter: FrontMatterOpt = None,
    collapsible_headers: CollapsibleOpt = None,
    ):
    """Render Markdown: a file to stdout, or a file/directory into --out-dir."""
    settings, extensions = _settings(config, overrides={
        "output_dir": out,
        "output_format": fmt,
        **_extension_overrides(
            tables=tables, footnotes=footnotes, strikethrough=strikethrough, tasklists=tasklists,
            smart_punctuation=smart_punctuation, header_attributes=header_attributes,
            emoji_shortcodes=emoji_shortcodes, front_matter=front_matter,
            collapsible_headers=collapsible_headers,
        ),
    })
    src = Path(path)
    if not src.exists():
        _fail(f"{path} does not exist")

    if out is None and src.is_file():
        try:
            text = serialize(render_file(src, extensions), settings.output_format)
        except (OSError, UnicodeDecodeError, MalformedFrontMatterStructural, TypeError) as e:
            _fail(f"Failed to convert {src}", e)
        typer.echo(text, nl=not text.endswith("\n"))
        return

    output_dir = Path(settings.output_dir)
    try:
        results = run_convert(src, extensions, output_dir, settings.output_format)
    except RuntimeError as e:
        _fail(str(e))
    for source, dest in results:
        typer.echo(f"  {source} -> {dest}")
    typer.echo(f"Converted {len(results)} document(s) to {output_dir}/")


def serve_cmd(
    root: Annotated[Optional[str], typer.Option("--root", help="Directory to serve Markdown files from")] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Interface to bind")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Port to bind")] = None,
    config: ConfigOpt = None,
    tables: TablesOpt = False,
    footnotes: FootnotesOpt = False,
    strikethrough: StrikeOpt = False,
    tasklists: TasklistsOpt = False,
    smart_punctuation: SmartOpt = False,
    header_attributes: AttrsOpt = False,
    emoji_shortcodes: EmojiOpt = False,
    front_matter: FrontMatterOpt = None,
    collapsible_headers: CollapsibleOpt = None,
    ):
    """Serve rendered Markdown over HTTP; every request re-renders from disk."""
    settings, extensions = _settings(config, overrides={
        "root": root, "host": host, "port": port,
        **_extension_overrides(
            tables=tables, footnotes=footnotes, strikethrough=strikethrough, tasklists=tasklists,
            smart_punctuation=smart_punctuation, header_attributes=header_attributes,
            emoji_shortcodes=emoji_shortcodes, front_matter=front_matter,
            collapsible_headers=collapsible_headers,
        ),
    })
    root_dir = Path(settings.root)
    if not root_dir.is_dir():
        _fail(f"{settings.root} is not a directory")

    app = create_app(root_dir, extensions, settings.index_file)
    typer.echo(f"Serving {root_dir.resolve()} on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
