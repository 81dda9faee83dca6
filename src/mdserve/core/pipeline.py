"""Render pipeline: front matter -> markdown-it -> collapsible transform -> HTML"""

import logging
from pathlib import Path
from typing import Any, Optional

from markdown_it import MarkdownIt
from markdown_it.common.utils import normalizeReference

from mdserve.core.collapsible import transform
from mdserve.core.frontmatter import extract_front_matter, load_front_matter, sniff
from mdserve.core.export import serialize
from mdserve.core.models import FrontMatterBlock, FrontMatterKind, PayloadFormat, RenderResult
from mdserve.core.options import ExtensionConfig
from mdserve.core.parse import discover_files, make_parser
from mdserve.exceptions import MalformedFrontMatterStructural


logger = logging.getLogger(__name__)


def _metadata(block: Optional[FrontMatterBlock]) -> dict[str, Any]:
    """Decode front matter, degrading to {} when the payload is invalid."""
    if block is None:
        return {}
    try:
        return load_front_matter(block)
    except ValueError as e:
        logger.warning("Could not decode %s front matter: %s", block.kind.value, e)
        return {}


def _seed_references(md: MarkdownIt, env: dict, refs: dict[str, list[dict[str, str]]]) -> None:
    """Expose refdef front matter to the body's reference links; first definition wins."""
    references = env.setdefault("references", {})
    for label, defs in refs.items():
        key = normalizeReference(label)
        if key in references or not defs:
            continue
        href = md.normalizeLink(defs[0]["uri"])
        if md.validateLink(href):
            references[key] = {"href": href, "title": defs[0].get("title", "")}


def render(document: str, config: ExtensionConfig) -> RenderResult:
    """Render a Markdown document to HTML.

    Front matter is looked up only for `config.front_matter`. An unclosed
    front matter fence is treated as absent unless `config.strict_front_matter`
    is set, in which case MalformedFrontMatterStructural propagates.
    """
    if config.strict_front_matter:
        block, body = extract_front_matter(document, config.front_matter)
    else:
        block, body = sniff(document, config.front_matter)
    metadata = _metadata(block)

    md = make_parser(config)
    env: dict = {}
    if block is not None and block.kind == FrontMatterKind.refdef:
        _seed_references(md, env, metadata)

    tokens = transform(md.parse(body, env), config.collapsible_headers)
    html = md.renderer.render(tokens, md.options, env)
    return RenderResult(html=html, front_matter=block, metadata=metadata)


def render_file(path: Path, config: ExtensionConfig) -> RenderResult:
    """Read a UTF-8 Markdown file and render it."""
    return render(Path(path).read_text(encoding='utf-8'), config)


def run_convert(
    path: Path,
    config: ExtensionConfig,
    output_dir: Path,
    fmt: PayloadFormat = PayloadFormat.html,
    ) -> list[tuple[Path, Path]]:
    """Render path (file or directory) into output_dir, mirroring the tree.

    Each source is written as `<stem>.<fmt>`. Returns (source, destination) pairs.
    """
    path = Path(path)
    fmt = PayloadFormat(fmt)
    base = path if path.is_dir() else path.parent
    results = []
    for src in discover_files(path):
        dest = output_dir / src.relative_to(base).with_suffix(f'.{fmt.value}')
        try:
            text = serialize(render_file(src, config), fmt)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(text, encoding='utf-8')
        except (OSError, UnicodeDecodeError, MalformedFrontMatterStructural) as e:
            raise RuntimeError(f"Failed to convert {src}: {e}") from e
        except TypeError as e:
            raise RuntimeError(f"Failed to convert {src}: front matter cannot be written as {fmt.value}: {e}") from e
        logger.debug("Converted %s -> %s", src, dest)
        results.append((src, dest))
    return results
