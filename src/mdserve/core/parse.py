"""Markdown file discovery and markdown-it parser construction"""

from pathlib import Path

from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from mdserve.core.options import ExtensionConfig
from mdserve.core.plugins import emoji_plugin, heading_attrs_plugin


MD_EXTENSIONS = {'.md', '.markdown'}


def make_parser(config: ExtensionConfig) -> MarkdownIt:
    """Build a CommonMark MarkdownIt instance with the extensions enabled in config."""
    md = MarkdownIt("commonmark", options_update={"typographer": config.smart_punctuation})
    if config.tables:
        md.enable("table")
    if config.strikethrough:
        md.enable("strikethrough")
    if config.smart_punctuation:
        md.enable(["replacements", "smartquotes"])
    if config.footnotes:
        md.use(footnote_plugin)
    if config.tasklists:
        md.use(tasklists_plugin)
    if config.header_attributes:
        md.use(heading_attrs_plugin)
    if config.emoji_shortcodes:
        md.use(emoji_plugin)
    return md


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() in MD_EXTENSIONS


def discover_files(path: Path) -> list[Path]:
    """Return sorted Markdown files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if is_markdown(path) else []
    return sorted(p for p in path.rglob('*') if p.is_file() and is_markdown(p))
