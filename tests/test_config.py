"""Unit tests for configuration management module."""

from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from taskdep.config import TaskdepConfig, load_config


@pytest.fixture
def valid_config_dict() -> dict[str, Any]:
    """Fixture providing valid configuration dictionary."""
    return {
        "taskfile": "build/Taskfile.yml",
        "output": "graph.png",
        "image_format": "png",
        "renderer": "neato",
        "render_timeout_seconds": 30,
        "cycle_color": "orange",
        "rankdir": "LR",
        "open_viewer": False,
        "logging_level": "DEBUG",
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, valid_config_dict: dict[str, Any]) -> Path:
    """Fixture providing temporary YAML config file."""
    config_path = tmp_path / ".taskdep.yaml"
    with config_path.open("w") as f:
        yaml.dump(valid_config_dict, f)
    return config_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove TASKDEP_ environment variables for each test."""
    for name in TaskdepConfig.model_fields:
        monkeypatch.delenv(f"TASKDEP_{name.upper()}", raising=False)


class TestTaskdepConfig:
    """Test the configuration model."""

    def test_defaults(self):
        """Test default values."""
        config = TaskdepConfig()

        assert config.taskfile == Path("Taskfile.yaml")
        assert config.output is None
        assert config.image_format == "svg"
        assert config.renderer == "dot"
        assert config.cycle_color == "red"
        assert config.rankdir == "TB"
        assert config.open_viewer is True
        assert config.logging_level == "WARNING"
        assert config.json_logs is False

    def test_case_insensitive_keywords(self):
        """Test that enumerated settings accept any case."""
        config = TaskdepConfig(image_format="SVG", rankdir="lr", logging_level="debug")

        assert config.image_format == "svg"
        assert config.rankdir == "LR"
        assert config.logging_level == "DEBUG"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("image_format", "gif"),
            ("rankdir", "diagonal"),
            ("logging_level", "LOUD"),
            ("render_timeout_seconds", 0),
            ("renderer", ""),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test that invalid values are rejected."""
        with pytest.raises(ValidationError):
            TaskdepConfig(**{field: value})


class TestLoading:
    """Test loading configuration from files and the environment."""

    def test_from_yaml(self, temp_config_file: Path):
        """Test loading a YAML configuration file."""
        config = TaskdepConfig.from_yaml(temp_config_file)

        assert config.taskfile == Path("build/Taskfile.yml")
        assert config.output == Path("graph.png")
        assert config.image_format == "png"
        assert config.renderer == "neato"
        assert config.render_timeout_seconds == 30
        assert config.open_viewer is False

    def test_from_yaml_missing_file(self, tmp_path: Path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            TaskdepConfig.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_invalid_yaml(self, tmp_path: Path):
        """Test that invalid YAML raises ValueError."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("renderer: [dot\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            TaskdepConfig.from_yaml(config_path)

    def test_from_yaml_empty_file(self, tmp_path: Path):
        """Test that an empty file raises ValueError."""
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("")

        with pytest.raises(ValueError, match="empty"):
            TaskdepConfig.from_yaml(config_path)

    def test_from_yaml_not_a_mapping(self, tmp_path: Path):
        """Test that a list document raises ValueError."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- a\n")

        with pytest.raises(ValueError, match="mapping"):
            TaskdepConfig.from_yaml(config_path)

    def test_env_overrides(self, temp_config_file: Path, monkeypatch):
        """Test that environment variables override file values."""
        monkeypatch.setenv("TASKDEP_RENDERER", "circo")
        monkeypatch.setenv("TASKDEP_OPEN_VIEWER", "yes")
        monkeypatch.setenv("TASKDEP_RENDER_TIMEOUT_SECONDS", "90")

        config = TaskdepConfig.from_yaml(temp_config_file)

        assert config.renderer == "circo"
        assert config.open_viewer is True
        assert config.render_timeout_seconds == 90

    def test_env_override_false(self, monkeypatch):
        """Test that non-truthy strings disable boolean settings."""
        monkeypatch.setenv("TASKDEP_OPEN_VIEWER", "no")

        assert TaskdepConfig.from_mapping().open_viewer is False

    def test_load_config_defaults(self, tmp_path: Path, monkeypatch):
        """Test that defaults are used when no config file exists."""
        monkeypatch.chdir(tmp_path)

        assert load_config() == TaskdepConfig()

    def test_load_config_discovers_default_file(self, temp_config_file: Path, monkeypatch):
        """Test that .taskdep.yaml in the working directory is picked up."""
        monkeypatch.chdir(temp_config_file.parent)

        assert load_config().renderer == "neato"

    def test_load_config_explicit_missing(self, tmp_path: Path):
        """Test that an explicit missing path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")


class TestValidateConfig:
    """Test configuration warnings."""

    def test_no_warnings_for_defaults(self):
        """Test that defaults produce no warnings."""
        assert TaskdepConfig().validate_config() == []

    def test_black_cycle_color(self):
        """Test warning for a cycle colour that does not stand out."""
        warnings = TaskdepConfig(cycle_color="black").validate_config()

        assert any("will not stand out" in w for w in warnings)

    def test_short_timeout(self):
        """Test warning for a very short render timeout."""
        warnings = TaskdepConfig(render_timeout_seconds=1).validate_config()

        assert any("Render timeout is short" in w for w in warnings)

    def test_output_extension_mismatch(self):
        """Test warning when the output suffix differs from the format."""
        warnings = TaskdepConfig(output="graph.png").validate_config()

        assert any("does not match image format" in w for w in warnings)
