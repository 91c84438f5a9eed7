"""
Configuration for the backwards compatibility gate.

Settings are read from a YAML file (``protolock-gate.yaml``), then from
``PROTOLOCK_GATE_*`` environment variables, then from explicit overrides such
as CLI options. Later sources win.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jsonschema
import yaml

from .context import WorkspaceContext
from .errors import ConfigurationError
from .lockstate import parse_options
from .resolver import DEFAULT_LOCAL_REPOSITORY, MAVEN_CENTRAL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "protolock-gate.yaml"
ENV_PREFIX = "PROTOLOCK_GATE_"

_PATH_FIELDS = (
    "proto_root",
    "lock_dir",
    "output_dir",
    "plugin_dir",
    "local_repository",
    "binary_resources",
    "working_dir",
)
_LIST_FIELDS = ("plugins", "repositories")
_BOOL_FIELDS = ("allow_breaking_changes", "skip", "offline")

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "proto_root": {"type": "string", "minLength": 1},
        "lock_dir": {"type": "string", "minLength": 1},
        "plugins": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "options": {
            "oneOf": [
                {"type": "string"},
                {"type": "array", "items": {"type": "string"}},
            ]
        },
        "output_dir": {"type": "string", "minLength": 1},
        "plugin_dir": {"type": "string", "minLength": 1},
        "classifier": {"type": "string", "minLength": 1},
        "allow_breaking_changes": {"type": "boolean"},
        "skip": {"type": "boolean"},
        "offline": {"type": "boolean"},
        "repositories": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "local_repository": {"type": "string", "minLength": 1},
        "binary_resources": {"type": "string", "minLength": 1},
        "working_dir": {"type": "string", "minLength": 1},
    },
}


@dataclass
class GateConfig:
    """Backwards compatibility gate configuration."""

    proto_root: Path = Path("src/main/proto")
    lock_dir: Optional[Path] = None
    plugins: List[str] = field(default_factory=list)
    options: str = ""
    output_dir: Path = Path("target")
    plugin_dir: Optional[Path] = None
    classifier: Optional[str] = None

    allow_breaking_changes: bool = False
    skip: bool = False

    # Plugin artifact resolution
    offline: bool = False
    repositories: List[str] = field(default_factory=lambda: [MAVEN_CENTRAL])
    local_repository: Path = DEFAULT_LOCAL_REPOSITORY

    binary_resources: Optional[Path] = None
    working_dir: Path = Path(".")

    @property
    def effective_lock_dir(self) -> Path:
        return self.lock_dir if self.lock_dir is not None else self.proto_root

    def workspace(self) -> WorkspaceContext:
        return WorkspaceContext.for_output_dir(self.output_dir, self.plugin_dir)

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], base_dir: Optional[Path] = None
    ) -> "GateConfig":
        """Build a config from already-parsed values.

        Relative paths are resolved against ``base_dir`` when given.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            values[key] = _coerce(key, value, base_dir)
        return cls(**values)

    @classmethod
    def from_file(cls, config_path: Path) -> "GateConfig":
        """Load configuration from a YAML file.

        Raises:
            ConfigurationError: if the file is not valid YAML or does not
                match the configuration schema
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        try:
            jsonschema.validate(data, CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            location = ".".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(
                f"Invalid configuration in {config_path} at {location}: {e.message}"
            ) from e

        logger.info(f"Loaded gate configuration from {config_path}")
        return cls.from_mapping(data, base_dir=config_path.resolve().parent)

    @classmethod
    def env_overrides(
        cls, environ: Optional[Mapping[str, str]] = None, prefix: str = ENV_PREFIX
    ) -> Dict[str, Any]:
        """Collect overrides from environment variables."""
        environ = os.environ if environ is None else environ
        known = {f.name for f in fields(cls)}
        overrides: Dict[str, Any] = {}
        for key, value in environ.items():
            if not key.startswith(prefix):
                continue
            config_key = key[len(prefix) :].lower()
            if config_key not in known:
                continue
            if config_key in _BOOL_FIELDS:
                overrides[config_key] = value.strip().lower() in ("1", "true", "yes", "on")
            elif config_key in _LIST_FIELDS:
                overrides[config_key] = [v.strip() for v in value.split(",") if v.strip()]
            else:
                overrides[config_key] = value
        return overrides

    def with_overrides(self, **overrides: Any) -> "GateConfig":
        """Return a copy with every non-None override applied."""
        values = {
            key: _coerce(key, value, None)
            for key, value in overrides.items()
            if value is not None
        }
        return replace(self, **values)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.classifier or not self.classifier.strip():
            errors.append(
                "No platform classifier configured; set 'classifier' or "
                f"{ENV_PREFIX}CLASSIFIER"
            )

        try:
            parse_options(self.options)
        except ConfigurationError as e:
            errors.append(str(e))

        if not self.offline and not self.repositories:
            errors.append("At least one plugin repository is required when not offline")

        if self.binary_resources is not None and not self.binary_resources.is_dir():
            errors.append(f"Binary resource directory not found: {self.binary_resources}")

        return errors

    def require_valid(self) -> "GateConfig":
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                "Invalid gate configuration:\n  - " + "\n  - ".join(errors)
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, Path) else value
        return data


def _coerce(key: str, value: Any, base_dir: Optional[Path]) -> Any:
    if value is None:
        return None
    if key in _PATH_FIELDS:
        path = Path(os.path.expanduser(str(value)))
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path
    if key == "options" and not isinstance(value, str):
        return shlex.join(str(v) for v in value)
    if key in _LIST_FIELDS:
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return [str(v) for v in value]
    return value


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> GateConfig:
    """Load configuration from file, environment and explicit overrides.

    Without an explicit ``config_path`` the default file in the current
    directory is used if it exists.
    """
    if config_path is None:
        default = Path(DEFAULT_CONFIG_FILE)
        config_path = default if default.exists() else None

    config = GateConfig.from_file(config_path) if config_path else GateConfig()
    config = config.with_overrides(**GateConfig.env_overrides(environ))
    return config.with_overrides(**overrides)
