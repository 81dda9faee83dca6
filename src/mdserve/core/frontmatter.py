"""Front matter detection for Refdef, JSON, YAML and TOML documents.

The sniffer only locates a front matter block at the head of a document and
hands back its raw payload together with the remaining body. Decoding the
payload is a separate step (`load_front_matter`) so a broken payload never
prevents the body from rendering.
"""

import json
import logging
import re
import tomllib
from typing import Any, Callable, Iterator, Optional

import yaml

from mdserve.core.models import FrontMatterBlock, FrontMatterKind
from mdserve.exceptions import MalformedFrontMatterStructural


logger = logging.getLogger(__name__)

# Single-line link reference definition: [label]: destination "title"
REFDEF_RE = re.compile(
    r'^ {0,3}\[(?P<label>[^\[\]]*[^\[\]\s][^\[\]]*)\]:[ \t]*'
    r'(?P<uri><[^<>\n]*>|[^\s<]\S*)'
    r'(?:[ \t]+(?P<title>"[^"\n]*"|\'[^\'\n]*\'|\([^()\n]*\)))?[ \t]*$'
)

# opening fence -> accepted closing fences
YAML_FENCES = {"---": ("---", "...")}
TOML_FENCES = {"+++": ("+++",), "---": ("---",)}
JSON_FENCES = {";;;": (";;;",), "---": ("---",)}


def _iter_lines(document: str, pos: int = 0) -> Iterator[tuple[int, int, str]]:
    """Yield (start, end, text) for each line from pos; text has no line ending."""
    n = len(document)
    while pos < n:
        nl = document.find("\n", pos)
        end = n if nl == -1 else nl + 1
        yield pos, end, document[pos:end].rstrip("\r\n")
        pos = end


def _skip_blank(document: str, pos: int) -> int:
    """Return the offset of the first non-blank line at or after pos."""
    for start, _, text in _iter_lines(document, pos):
        if text.strip():
            return start
    return len(document)


def _content_start(document: str) -> int:
    return _skip_blank(document, 1 if document.startswith("\ufeff") else 0)


def _fenced(
    document: str,
    start: int,
    kind: FrontMatterKind,
    fences: dict[str, tuple[str, ...]],
    ) -> Optional[FrontMatterBlock]:
    """Extract the interior of a fence pair opening on the line at start."""
    first = next(_iter_lines(document, start), None)
    if first is None:
        return None
    _, payload_start, opener = first
    closers = fences.get(opener.rstrip())
    if closers is None:
        return None

    for line_start, line_end, text in _iter_lines(document, payload_start):
        if text.rstrip() in closers:
            return FrontMatterBlock(
                kind=kind,
                raw_payload=document[payload_start:line_start],
                span=(start, _skip_blank(document, line_end)),
            )
    raise MalformedFrontMatterStructural(
        f"{kind.value} front matter opened with {opener.strip()!r} but never closed"
    )


def _json_object(document: str, start: int) -> Optional[FrontMatterBlock]:
    """Extract a bare top-level JSON object whose closing brace ends its line."""
    if not document.startswith("{", start):
        return None

    depth, in_string, escaped = 0, False, False
    for i in range(start, len(document)):
        ch = document[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                nl = document.find("\n", i)
                line_end = len(document) if nl == -1 else nl + 1
                if document[i + 1:line_end].strip():
                    return None
                return FrontMatterBlock(
                    kind=FrontMatterKind.json,
                    raw_payload=document[start:i + 1],
                    span=(start, _skip_blank(document, line_end)),
                )
    raise MalformedFrontMatterStructural("json front matter object is never closed")


def _sniff_refdef(document: str, start: int) -> Optional[FrontMatterBlock]:
    """Consume leading single-line refdefs; blank lines between them are allowed."""
    payload_end = None
    body_start = len(document)
    for line_start, line_end, text in _iter_lines(document, start):
        if not text.strip():
            continue
        if not REFDEF_RE.match(text):
            body_start = line_start
            break
        payload_end = line_end

    if payload_end is None:
        return None
    return FrontMatterBlock(
        kind=FrontMatterKind.refdef,
        raw_payload=document[start:payload_end],
        span=(start, body_start),
    )


def _sniff_json(document: str, start: int) -> Optional[FrontMatterBlock]:
    return _fenced(document, start, FrontMatterKind.json, JSON_FENCES) or _json_object(document, start)


def _sniff_yaml(document: str, start: int) -> Optional[FrontMatterBlock]:
    return _fenced(document, start, FrontMatterKind.yaml, YAML_FENCES)


def _sniff_toml(document: str, start: int) -> Optional[FrontMatterBlock]:
    return _fenced(document, start, FrontMatterKind.toml, TOML_FENCES)


SNIFFERS: dict[FrontMatterKind, Callable[[str, int], Optional[FrontMatterBlock]]] = {
    FrontMatterKind.refdef: _sniff_refdef,
    FrontMatterKind.json:   _sniff_json,
    FrontMatterKind.yaml:   _sniff_yaml,
    FrontMatterKind.toml:   _sniff_toml,
}


def extract_front_matter(
    document: str,
    kind: Optional[FrontMatterKind],
    ) -> tuple[Optional[FrontMatterBlock], str]:
    """Return (block, body); raises MalformedFrontMatterStructural on an unclosed fence."""
    if kind is None or not document:
        return None, document
    block = SNIFFERS[FrontMatterKind(kind)](document, _content_start(document))
    if block is None:
        return None, document
    return block, document[block.span[1]:]


def sniff(
    document: str,
    expected_kind: Optional[FrontMatterKind],
    ) -> tuple[Optional[FrontMatterBlock], str]:
    """Best-effort extraction: malformed front matter is treated as absent."""
    try:
        return extract_front_matter(document, expected_kind)
    except MalformedFrontMatterStructural as e:
        logger.warning("Ignoring front matter: %s", e)
        return None, document


def _parse_refdefs(payload: str) -> dict[str, list[dict[str, str]]]:
    """Group refdef lines by label; repeated labels accumulate in order."""
    refs: dict[str, list[dict[str, str]]] = {}
    for line in payload.splitlines():
        m = REFDEF_RE.match(line)
        if not m:
            continue
        entry = {"uri": m.group("uri").removeprefix("<").removesuffix(">")}
        if m.group("title"):
            entry["title"] = m.group("title")[1:-1]
        refs.setdefault(m.group("label").strip(), []).append(entry)
    return refs


def load_front_matter(block: FrontMatterBlock) -> dict[str, Any]:
    """Decode a block's raw payload into a mapping; raises ValueError when invalid."""
    payload = block.raw_payload
    if block.kind == FrontMatterKind.refdef:
        return _parse_refdefs(payload)
    if block.kind == FrontMatterKind.json:
        data = json.loads(payload) if payload.strip() else {}
    elif block.kind == FrontMatterKind.toml:
        data = tomllib.loads(payload)
    else:
        try:
            data = yaml.safe_load(payload) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML front matter: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid {block.kind.value} front matter: expected a mapping, got {type(data).__name__}"
        )
    return data
