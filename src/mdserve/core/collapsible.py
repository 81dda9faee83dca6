"""Heading-to-<details> transform over the top-level block structure.

Tokens are grouped into top-level blocks, headings matching a selector take
ownership of the blocks that follow them until a heading of the same or a
shallower level, and the owned blocks are scanned again so deeper matching
headings nest. The input tokens are never modified.
"""

from typing import Iterable, Optional

from markdown_it.common.utils import escapeHtml
from markdown_it.token import Token

from mdserve.core.models import Block, CollapsibleSection, Node
from mdserve.core.options import HeadingSelector


def split_blocks(tokens: Iterable[Token]) -> list[Block]:
    """Group a flat token stream into top-level blocks using token nesting."""
    tokens = list(tokens)
    blocks: list[Block] = []
    start, depth = 0, 0
    for i, tok in enumerate(tokens):
        if depth == 0:
            start = i
        depth += tok.nesting
        if depth == 0:
            blocks.append(tuple(tokens[start:i + 1]))
    if depth:
        blocks.append(tuple(tokens[start:]))
    return blocks


def heading_level(node: Node) -> int | None:
    """Return 1-6 for a heading block, else None (sections are not headings)."""
    if isinstance(node, tuple) and node and node[0].type == 'heading_open':
        return int(node[0].tag[1:])
    return None


def heading_text(block: Block) -> str:
    """Markdown source of a heading, before emoji or typographer rewrites."""
    return block[1].content.strip()


def _is_footnotes(node: Node) -> bool:
    return isinstance(node, tuple) and bool(node) and node[0].type == 'footnote_block_open'


def _closes(node: Node, level: int) -> bool:
    other = heading_level(node)
    return _is_footnotes(node) or (other is not None and other <= level)


def collapse(nodes: Iterable[Node], selector: Optional[HeadingSelector]) -> list[Node]:
    """Wrap each selected heading and the nodes it owns into a CollapsibleSection."""
    nodes = list(nodes)
    if selector is None:
        return nodes

    out: list[Node] = []
    i = 0
    while i < len(nodes):
        node = nodes[i]
        level = heading_level(node)
        if level is None or not selector.matches(level, heading_text(node)):
            out.append(node)
            i += 1
            continue

        j = i + 1
        while j < len(nodes) and not _closes(nodes[j], level):
            j += 1
        out.append(CollapsibleSection(heading=node, body=tuple(collapse(nodes[i + 1:j], selector))))
        i = j
    return out


def _html(content: str) -> Token:
    return Token('html_block', '', 0, content=content, block=True)


def _section_tokens(section: CollapsibleSection) -> list[Token]:
    opener, inline = section.heading[0], section.heading[1]
    anchor = opener.attrGet('id')
    details = f'<details id="{escapeHtml(str(anchor))}">' if anchor else '<details>'
    return [
        _html(f"{details}\n<summary>"),
        inline,
        _html("</summary>\n"),
        *flatten(section.body),
        _html("</details>\n"),
    ]


def flatten(nodes: Iterable[Node]) -> list[Token]:
    """Turn nodes back into a token stream the markdown-it renderer accepts."""
    tokens: list[Token] = []
    for node in nodes:
        if isinstance(node, CollapsibleSection):
            tokens.extend(_section_tokens(node))
        else:
            tokens.extend(node)
    return tokens


def transform(tokens: Iterable[Token], selector: Optional[HeadingSelector]) -> list[Token]:
    """Apply the collapsible transform to a parsed token stream."""
    tokens = list(tokens)
    if selector is None:
        return tokens
    return flatten(collapse(split_blocks(tokens), selector))
