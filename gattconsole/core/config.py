"""Configuration loading and validation for gattconsole."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from gattconsole.core.context import ConsoleSettings
from gattconsole.core.errors import ConfigLoadError, ConfigValidationError

_CARET_RE = re.compile(r"^\^([@-_a-z?])$")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class ConsoleConfig:
    settings: ConsoleSettings = field(default_factory=ConsoleSettings)
    adapter: str | None = None
    log_level: str = "WARNING"
    source: Path | None = None


def _load_schema_validator() -> Any:
    schema_text = resources.files("gattconsole.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "gattconsole/config.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def parse_key(value: str, *, context: str) -> str:
    """Turn a literal character or caret notation (``^[``, ``^R``) into one character."""
    if len(value) == 1:
        return value
    match = _CARET_RE.match(value)
    if not match:
        raise ConfigValidationError(f"{context} must be one character or caret notation like '^R'")
    return chr(ord(match.group(1).upper()) ^ 0x40)


def _build_config(doc: dict[str, Any], source: Path) -> ConsoleConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = ConsoleSettings()
    settings = ConsoleSettings(
        unwind_key=parse_key(doc["unwind_key"], context="unwind_key")
        if "unwind_key" in doc
        else defaults.unwind_key,
        refresh_key=parse_key(doc["refresh_key"], context="refresh_key")
        if "refresh_key" in doc
        else defaults.refresh_key,
        hex_marker=doc.get("hex_marker", defaults.hex_marker).lower(),
        value_prefix=doc.get("value_prefix", defaults.value_prefix),
    )
    if settings.unwind_key == settings.refresh_key:
        raise ConfigValidationError(f"unwind_key and refresh_key must differ in {source}")

    return ConsoleConfig(
        settings=settings,
        adapter=doc.get("adapter"),
        log_level=normalize_log_level(doc.get("log_level", "WARNING")),
        source=source,
    )


def normalize_log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigValidationError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
    return level


def load_config(path: Path | None = None) -> ConsoleConfig:
    """Load the config at ``path``, or the XDG default when it exists."""
    if path is None:
        path = default_config_path()
        if not path.is_file():
            LOGGER.debug("No config at %s; using defaults", path)
            return ConsoleConfig()
    return _build_config(_read_yaml(path), path)
