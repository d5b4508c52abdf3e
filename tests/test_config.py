"""Tests for layered config resolution (workspace file, --config-file, environment)."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from worktrack_core.config import ConfigLoader
from worktrack_core.errors import ConfigError
from worktrack_core.models import RelationType, WorkItemKind

from conftest import write_workspace_config


def test_defaults_without_config(tmp_path: Path, clean_env):
    ctx = ConfigLoader.resolve_context(tmp_path)

    assert ctx.context == "default"
    assert ctx.project_dir == tmp_path.resolve() / ".work" / "projects" / "default"
    assert ctx.config.log.level == logging.WARNING
    assert ctx.config.schema_config.kinds == list(WorkItemKind)


def test_workspace_config_overrides_relation_table(tmp_path: Path, clean_env):
    write_workspace_config(
        tmp_path,
        """
[log]
verbosity = "info"

[relations.parent_of]
from_kinds = ["epic"]
to_kinds = ["task", "story"]

[relations.relates_to]
cycle_group = "association"
""",
        context="alpha",
    )

    config = ConfigLoader.load(tmp_path)
    schema = config.relation_schema()

    assert config.context == "alpha"
    assert config.log.level == logging.INFO
    assert schema.get("parent_of").from_kinds == [WorkItemKind.EPIC]
    assert schema.get("parent_of").cycle_group == "hierarchy"
    assert schema.group_of(RelationType.RELATES_TO) == "association"


def test_layers_deep_merge_in_order(tmp_path: Path, clean_env):
    write_workspace_config(
        tmp_path,
        """
[log]
verbosity = "info"
debug = false
""",
        context="alpha",
    )
    extra = tmp_path / "extra.toml"
    extra.write_text('context = "beta"\n[log]\ndebug = true\n', encoding="utf-8")

    config = ConfigLoader.load(tmp_path, config_file=extra)
    assert config.context == "beta"
    assert config.log.verbosity == "info"
    assert config.log.level == logging.DEBUG

    clean_env.setenv("WORKTRACK_CONTEXT", "gamma")
    clean_env.setenv("WORKTRACK_LOG_VERBOSITY", "error")
    config = ConfigLoader.load(tmp_path, config_file=extra)
    assert config.context == "gamma"
    assert config.log.verbosity == "error"


def test_explicit_context_wins(tmp_path: Path, clean_env):
    clean_env.setenv("WORKTRACK_CONTEXT", "from-env")

    ctx = ConfigLoader.resolve_context(tmp_path, context="cli")

    assert ctx.context == "cli"
    assert ctx.project_dir.name == "cli"


def test_invalid_env_verbosity_is_ignored(tmp_path: Path, clean_env):
    clean_env.setenv("WORKTRACK_LOG_VERBOSITY", "loud")

    assert ConfigLoader.load(tmp_path).log.verbosity == "warning"


@pytest.mark.parametrize(
    "text",
    [
        'context = "../escape"',
        "[relations.depends_on]\nfrom_kinds = []",
        '[relations.blocks]\nfrom_kinds = ["spike"]',
        '[relations.parent_of]\nname = "blocks"',
        '[relations.blocks]\ninverse = "relates_to"',
        '[schema]\nkinds = ["spike"]',
        "[log]\nverbosity = \"chatty\"",
        "unknown_key = 1",
        "this is not toml",
    ],
)
def test_invalid_config_raises(tmp_path: Path, clean_env, text):
    write_workspace_config(tmp_path, text)

    with pytest.raises(ConfigError):
        ConfigLoader.load(tmp_path)


def test_missing_explicit_config_file_raises(tmp_path: Path, clean_env):
    with pytest.raises(ConfigError):
        ConfigLoader.load(tmp_path, config_file=tmp_path / "nope.toml")


def test_bad_explicit_context_raises(tmp_path: Path, clean_env):
    with pytest.raises(ConfigError):
        ConfigLoader.resolve_context(tmp_path, context=".hidden")
