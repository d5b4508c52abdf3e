"""Configuration and workspace context resolution for worktrack.

Layer order (later wins):
1) System defaults (hardcoded)
2) <root>/.work/config.toml (workspace config, optional)
3) <root>/.work/contexts.json (active context saved by `worktrack context set`)
4) Explicit --config-file (optional)
5) Environment: WORKTRACK_CONTEXT, WORKTRACK_LOG_VERBOSITY

Tables are deep-merged, so a config file only needs the keys it changes:

    context = "default"

    [log]
    verbosity = "info"

    [schema]
    kinds = ["task", "bug", "epic", "story"]

    [relations.parent_of]
    from_kinds = ["epic"]
    to_kinds = ["task", "story"]
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import WorkItemKind
from .schema import RelationSchema

# Conditional TOML import: stdlib tomllib (3.11+) or fallback tomli (<3.11)
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)

WORK_DIR_NAME = ".work"
CONFIG_FILE_NAME = "config.toml"
CONTEXT_STATE_FILE_NAME = "contexts.json"
PROJECTS_DIR_NAME = "projects"

LOG_VERBOSITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}


def check_context_name(name: str) -> str:
    """Context names become directory names under .work/projects/."""
    value = name.strip()
    if not value or "/" in value or "\\" in value or value.startswith("."):
        raise ValueError(f"invalid context name: {name!r}")
    return value


def read_active_context(work_dir: Path) -> Optional[str]:
    """Return the context saved in <work_dir>/contexts.json, or None."""
    path = work_dir / CONTEXT_STATE_FILE_NAME
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Context state must be a JSON object: {path}")
    active = data.get("active")
    if active is None:
        return None
    try:
        return check_context_name(str(active))
    except ValueError as e:
        raise ConfigError(f"{path}: {e}")


def write_active_context(work_dir: Path, name: Optional[str]) -> Path:
    """Persist (or clear, with None) the active context."""
    path = work_dir / CONTEXT_STATE_FILE_NAME
    work_dir.mkdir(parents=True, exist_ok=True)
    try:
        path.write_text(json.dumps({"active": name}, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write {path}: {e}")
    return path


class LogConfig(BaseModel):
    """[log] table."""

    verbosity: str = "warning"
    debug: bool = False

    model_config = ConfigDict(extra="forbid")

    @field_validator("verbosity")
    @classmethod
    def validate_verbosity(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in LOG_VERBOSITY_LEVELS:
            raise ValueError(f"verbosity must be one of {', '.join(LOG_VERBOSITY_LEVELS)}")
        return value

    @property
    def level(self) -> int:
        if self.debug:
            return logging.DEBUG
        return LOG_VERBOSITY_LEVELS[self.verbosity]


class SchemaConfig(BaseModel):
    """[schema] table."""

    kinds: List[WorkItemKind] = Field(default_factory=lambda: list(WorkItemKind))

    model_config = ConfigDict(extra="forbid", use_enum_values=False)


class WorkConfig(BaseModel):
    """Effective configuration after layering."""

    context: str = "default"
    log: LogConfig = Field(default_factory=LogConfig)
    schema_config: SchemaConfig = Field(default_factory=SchemaConfig, alias="schema")
    relations: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("context")
    @classmethod
    def validate_context(cls, v: str) -> str:
        return check_context_name(v)

    def relation_schema(self) -> RelationSchema:
        return RelationSchema.from_overrides(self.relations, kinds=self.schema_config.kinds)


class WorkspaceContext(BaseModel):
    """Resolved workspace: root directory, active context and its config."""

    root: Path = Field(..., description="Workspace root (contains .work/)")
    work_dir: Path = Field(..., description="root / .work")
    project_dir: Path = Field(..., description="work_dir / projects / <context>")
    context: str
    config: WorkConfig

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ConfigLoader:
    """Load and resolve worktrack configuration."""

    @staticmethod
    def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(base)
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @staticmethod
    def _read_toml_optional(path: Path) -> Dict[str, Any]:
        """Read TOML config file; return {} if not found."""
        if not path.exists():
            return {}
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except Exception as e:
            raise ConfigError(f"Failed to load TOML from {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config TOML must be a table: {path}")
        return data

    @staticmethod
    def _env_overrides() -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        context = os.environ.get("WORKTRACK_CONTEXT", "").strip()
        if context:
            overrides["context"] = context
        verbosity = os.environ.get("WORKTRACK_LOG_VERBOSITY", "").strip().lower()
        if verbosity:
            if verbosity in LOG_VERBOSITY_LEVELS:
                overrides["log"] = {"verbosity": verbosity}
            else:
                logger.warning(f"Ignoring invalid WORKTRACK_LOG_VERBOSITY: {verbosity}")
        return overrides

    @staticmethod
    def load(root: Path, config_file: Optional[Path] = None) -> WorkConfig:
        """Load the effective config for a workspace root.

        Args:
            root: Workspace root directory
            config_file: Explicit config file layered over the workspace config

        Raises:
            ConfigError: If a file is unreadable or a value is invalid
        """
        work_dir = root / WORK_DIR_NAME
        layers = [ConfigLoader._read_toml_optional(work_dir / CONFIG_FILE_NAME)]
        active = read_active_context(work_dir)
        if active:
            layers.append({"context": active})
        if config_file is not None:
            if not config_file.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            layers.append(ConfigLoader._read_toml_optional(config_file))
        layers.append(ConfigLoader._env_overrides())

        merged: Dict[str, Any] = {}
        for layer in layers:
            merged = ConfigLoader._deep_merge(merged, layer)

        try:
            config = WorkConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")
        # Bad relation overrides fail here, not on first link.
        config.relation_schema()
        return config

    @staticmethod
    def resolve_context(
        root: Optional[Path] = None,
        *,
        context: Optional[str] = None,
        config_file: Optional[Path] = None,
    ) -> WorkspaceContext:
        """Resolve the workspace context; an explicit `context` wins over config."""
        resolved_root = (root or Path.cwd()).expanduser().resolve()
        config = ConfigLoader.load(resolved_root, config_file=config_file)
        if context:
            try:
                config = config.model_copy(update={"context": check_context_name(context)})
            except ValueError as e:
                raise ConfigError(str(e))
        work_dir = resolved_root / WORK_DIR_NAME
        return WorkspaceContext(
            root=resolved_root,
            work_dir=work_dir,
            project_dir=work_dir / PROJECTS_DIR_NAME / config.context,
            context=config.context,
            config=config,
        )
