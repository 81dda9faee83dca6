"""Extension toggles and the collapsible-heading selector"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from mdserve.core.frontmatter import SNIFFERS
from mdserve.core.models import FrontMatterKind
from mdserve.exceptions import ConfigurationError


HEADING_LEVELS = range(1, 7)

_LEVEL_RE = re.compile(r'^h(\d)(\+?)$', re.IGNORECASE)


def _describe(error: ValidationError) -> str:
    """Flatten pydantic errors into a single 'field: message' line."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class _FrozenModel(BaseModel):
    """Immutable model whose construction failures surface as ConfigurationError."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {type(self).__name__}: {_describe(e)}") from e


class HeadingSelector(_FrozenModel):
    """Heading-level predicate, optionally narrowed to an exact heading text."""
    levels: frozenset[int]
    text:   Optional[str] = None

    @field_validator("levels")
    @classmethod
    def _check_levels(cls, value: frozenset[int]) -> frozenset[int]:
        if not value:
            raise ValueError("at least one heading level is required")
        bad = sorted(v for v in value if v not in HEADING_LEVELS)
        if bad:
            raise ValueError(f"heading levels must be between 1 and 6, got {bad}")
        return value

    @classmethod
    def parse(cls, spec: str) -> "HeadingSelector":
        """Parse 'h2', 'h2+', 'h2,h4', optionally followed by ':text' or '=text'."""
        levels_part, text = spec, None
        m = re.search(r'[:=]', spec)
        if m:
            levels_part, text = spec[:m.start()], spec[m.end():].strip() or None

        levels: set[int] = set()
        for item in levels_part.split(","):
            lm = _LEVEL_RE.match(item.strip())
            if not lm:
                raise ConfigurationError(
                    f"Invalid heading selector {spec!r}: expected items like 'h2', 'h2+' or 'h2,h4'"
                )
            level = int(lm.group(1))
            if level not in HEADING_LEVELS:
                raise ConfigurationError(f"Invalid heading selector {spec!r}: h{level} is not a heading level")
            levels.update(range(level, 7) if lm.group(2) else (level,))
        return cls(levels=frozenset(levels), text=text)

    def matches(self, level: int, text: str) -> bool:
        return level in self.levels and (self.text is None or self.text == text.strip())


class ExtensionConfig(_FrozenModel):
    """Parser and transform toggles; built once and shared read-only across renders."""
    tables:              bool = False
    footnotes:           bool = False
    strikethrough:       bool = False
    tasklists:           bool = False
    smart_punctuation:   bool = False
    header_attributes:   bool = False
    emoji_shortcodes:    bool = False
    front_matter:        Optional[FrontMatterKind] = None
    collapsible_headers: Optional[HeadingSelector] = None
    strict_front_matter: bool = False

    @field_validator("collapsible_headers", mode="before")
    @classmethod
    def _parse_selector(cls, value: Any) -> Any:
        if isinstance(value, str):
            return HeadingSelector.parse(value) if value.strip() else None
        return value

    @model_validator(mode="after")
    def _check_combinations(self) -> "ExtensionConfig":
        if self.front_matter is not None and self.front_matter not in SNIFFERS:
            raise ValueError(f"no front matter sniffer for {self.front_matter.value!r}")
        if self.strict_front_matter and self.front_matter is None:
            raise ValueError("strict_front_matter requires a front_matter kind")
        return self
