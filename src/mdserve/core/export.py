"""Serialization of a RenderResult into the html/json/yaml/toml output formats"""

import json
from typing import Any

import tomli_w
import yaml

from mdserve.core.models import PayloadFormat, RenderResult


def build_payload(result: RenderResult) -> dict[str, Any]:
    """Return the {front_matter, html} payload; front_matter is the decoded mapping."""
    return {"front_matter": result.metadata, "html": result.html}


def to_json(result: RenderResult) -> str:
    # YAML/TOML dates are not JSON types; emit them as strings
    return json.dumps(build_payload(result), indent=2, ensure_ascii=False, default=str)


def to_yaml(result: RenderResult) -> str:
    return yaml.safe_dump(build_payload(result), allow_unicode=True, sort_keys=False)


def _drop_none(value: Any) -> Any:
    """TOML has no null: drop None from mappings and sequences."""
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_drop_none(v) for v in value if v is not None]
    return value


def to_toml(result: RenderResult) -> str:
    return tomli_w.dumps(_drop_none(build_payload(result)))


def serialize(result: RenderResult, fmt: PayloadFormat) -> str:
    """Render result as text in the requested output format."""
    fmt = PayloadFormat(fmt)
    if fmt == PayloadFormat.json:
        return to_json(result)
    if fmt == PayloadFormat.yaml:
        return to_yaml(result)
    if fmt == PayloadFormat.toml:
        return to_toml(result)
    return result.html
