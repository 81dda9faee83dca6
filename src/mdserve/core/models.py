"""Data models shared by the sniffer, transform, and render pipeline"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class FrontMatterKind(str, Enum):
    refdef = "refdef"
    json = "json"
    yaml = "yaml"
    toml = "toml"


class PayloadFormat(str, Enum):
    """Output formats: rendered HTML, or the {front_matter, html} payload."""
    html = "html"
    json = "json"
    yaml = "yaml"
    toml = "toml"


@dataclass(frozen=True)
class FrontMatterBlock:
    """Located front matter; `document[span[1]:]` is the remaining body."""
    kind:        FrontMatterKind
    raw_payload: str
    span:        tuple[int, int]    # [start, end) character offsets


Block = tuple  # consecutive markdown-it tokens forming one top-level block


@dataclass(frozen=True)
class CollapsibleSection:
    """A heading block wrapped together with the nodes it owns."""
    heading: Block
    body:    tuple


Node = Union[Block, CollapsibleSection]


@dataclass(frozen=True)
class RenderResult:
    html:         str
    front_matter: Optional[FrontMatterBlock] = None
    metadata:     dict[str, Any] = field(default_factory=dict)
