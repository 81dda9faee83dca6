"""Application configuration: settings schema and config file loader"""

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from mdserve.core.models import FrontMatterKind, PayloadFormat
from mdserve.core.options import ExtensionConfig
from mdserve.exceptions import ConfigurationError


CONFIG_FILE = "mdserve.yaml"


class Settings(BaseModel):
    root:        str = Field(default=".",         description="Directory served in serve mode")
    host:        str = Field(default="127.0.0.1", description="Interface the server binds to")
    port:        int = Field(default=8083, ge=1, le=65535)
    index_file:  str = Field(default="index.md",  description="File rendered for directory requests")
    output_dir:  str = Field(default="dist",      description="Directory for converted files")
    output_format: PayloadFormat = Field(default=PayloadFormat.html, description="Format written by convert")
    log_level:   str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    tables:              bool = False
    footnotes:           bool = False
    strikethrough:       bool = False
    tasklists:           bool = False
    smart_punctuation:   bool = False
    header_attributes:   bool = False
    emoji_shortcodes:    bool = False
    front_matter:        Optional[FrontMatterKind] = None
    collapsible_headers: Optional[str] = Field(default=None, description="Heading selector, e.g. h2+ or h5:text")
    strict_front_matter: bool = False

    def extension_config(self) -> ExtensionConfig:
        """Build the immutable ExtensionConfig; raises ConfigurationError if invalid."""
        return ExtensionConfig(**self.model_dump(include=set(ExtensionConfig.model_fields)))


def _read_config_file(path: Path) -> dict[str, Any]:
    """Parse a .json, .toml, .yaml or .yml config file into a dict."""
    suffix = path.suffix.lower()
    if suffix not in (".json", ".toml", ".yaml", ".yml"):
        raise ConfigurationError(f"{path.name}: unsupported config format, use json, toml or yaml")
    try:
        text = path.read_text(encoding="utf-8")
        if suffix == ".json":
            data = json.loads(text)
        elif suffix == ".toml":
            data = tomllib.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid {path.name}: expected a mapping, got {type(data).__name__}")
    return data


def load_config(path: Optional[str] = None, overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from a config file, then MDSERVE_<FIELD> env vars, then non-None CLI overrides.

    Without an explicit path, mdserve.yaml in the working directory is used when present.
    """
    data: dict[str, Any] = {}
    if path is not None:
        if not Path(path).exists():
            raise ConfigurationError(f"Config file {path} does not exist")
        data = _read_config_file(Path(path))
    elif Path(CONFIG_FILE).exists():
        data = _read_config_file(Path(CONFIG_FILE))

    for name in Settings.model_fields:
        if val := os.getenv(f"MDSERVE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
