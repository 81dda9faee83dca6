"""markdown-it core rules for emoji shortcodes and heading attributes"""

import re

import emoji
from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore


ATTRS_RE = re.compile(r'\s*\{([^{}]*)\}\s*$')


def _emojize(state: StateCore) -> None:
    """Replace GitHub-style shortcodes (:tada:, :+1:) in text tokens; code spans are untouched."""
    for token in state.tokens:
        if token.type != "inline" or not token.children:
            continue
        for child in token.children:
            if child.type == "text" and ":" in child.content:
                child.content = emoji.emojize(child.content, language="alias")


def _parse_attrs(spec: str) -> list[tuple[str, str]] | None:
    """Parse '#id .class key=value' items; None if any item is unrecognized."""
    attrs = []
    for item in spec.split():
        if item.startswith("#") and len(item) > 1:
            attrs.append(("id", item[1:]))
        elif item.startswith(".") and len(item) > 1:
            attrs.append(("class", item[1:]))
        elif "=" in item and not item.startswith("="):
            key, value = item.split("=", 1)
            attrs.append((key, value.strip('"\'')))
        else:
            return None
    return attrs or None


def _heading_attrs(state: StateCore) -> None:
    """Move a trailing '{#id .class}' from heading text onto the heading tag."""
    tokens = state.tokens
    for i, token in enumerate(tokens[:-1]):
        inline = tokens[i + 1]
        if token.type != "heading_open" or not inline.children:
            continue
        children = inline.children
        j = len(children)
        while j > 0 and children[j - 1].type in ("text", "text_special"):
            j -= 1
        if j == len(children):
            continue

        tail = "".join(c.content for c in children[j:])
        m = ATTRS_RE.search(tail)
        attrs = _parse_attrs(m.group(1)) if m else None
        if attrs is None:
            continue

        head = children[j].copy(type="text", content=tail[:m.start()].rstrip())
        inline.children = children[:j] + ([head] if head.content else [])
        inline.content = ATTRS_RE.sub("", inline.content)
        for key, value in attrs:
            if key == "class":
                token.attrJoin("class", value)
            else:
                token.attrSet(key, value)


def emoji_plugin(md: MarkdownIt) -> None:
    md.core.ruler.push("emoji_shortcodes", _emojize)


def heading_attrs_plugin(md: MarkdownIt) -> None:
    # before replacements/smartquotes so attribute text is read verbatim
    md.core.ruler.after("inline", "heading_attrs", _heading_attrs)
