"""Configuration Management with Pydantic.

This module implements the taskdep configuration model, loaded from an
optional YAML file with environment variable overrides. Command-line flags
are applied on top by the CLI.
"""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

from taskdep.graph.emitter import DEFAULT_CYCLE_COLOR

logger = structlog.get_logger(__name__)

DEFAULT_TASKFILE = "Taskfile.yaml"
DEFAULT_CONFIG_FILES = (".taskdep.yaml", ".taskdep.yml")
ENV_PREFIX = "TASKDEP_"
SHORT_TIMEOUT_THRESHOLD = 5
TRUTHY = ("true", "1", "yes", "on")


class TaskdepConfig(BaseModel):
    """taskdep configuration.

    Attributes:
        taskfile: Taskfile to read
        output: Image path to write; defaults to the Taskfile name with the
            image format's extension
        image_format: Graphviz output format
        renderer: Graphviz layout binary
        render_timeout_seconds: Maximum run time of the renderer
        cycle_color: Colour of cycle edges and tasks
        rankdir: Graphviz layout direction
        open_viewer: Open the rendered image in the browser
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit logs as JSON instead of console lines
    """

    taskfile: Path = Field(
        default=Path(DEFAULT_TASKFILE),
        description="Taskfile to read",
    )
    output: Path | None = Field(
        default=None,
        description="Rendered image path",
    )
    image_format: str = Field(
        default="svg",
        description="Graphviz output format",
        pattern=r"^(svg|png|pdf)$",
    )
    renderer: str = Field(
        default="dot",
        description="Graphviz layout binary",
        min_length=1,
    )
    render_timeout_seconds: int = Field(
        default=60,
        ge=1,
        description="Renderer timeout in seconds",
    )
    cycle_color: str = Field(
        default=DEFAULT_CYCLE_COLOR,
        description="Colour of cycle edges",
        min_length=1,
    )
    rankdir: str = Field(
        default="TB",
        description="Graphviz layout direction",
        pattern=r"^(TB|LR|BT|RL)$",
    )
    open_viewer: bool = Field(
        default=True,
        description="Open the rendered image in the browser",
    )
    logging_level: str = Field(
        default="WARNING",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON logs",
    )

    model_config = {"str_strip_whitespace": True}

    @field_validator("image_format", mode="before")
    @classmethod
    def lower_image_format(cls, v: Any) -> Any:
        """Accept the image format in any case."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("rankdir", "logging_level", mode="before")
    @classmethod
    def upper_keyword(cls, v: Any) -> Any:
        """Accept the layout direction and logging level in any case."""
        return v.strip().upper() if isinstance(v, str) else v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TaskdepConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            Parsed and validated TaskdepConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not config_data:
            msg = "Configuration file is empty"
            raise ValueError(msg)
        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        return cls.from_mapping(config_data)

    @classmethod
    def from_mapping(cls, config_data: dict[str, Any] | None = None) -> "TaskdepConfig":
        """Build configuration from a mapping with environment overrides applied.

        Args:
            config_data: Base configuration values

        Returns:
            Parsed and validated TaskdepConfig instance
        """
        config = cls(**cls._apply_env_overrides(dict(config_data or {})))
        logger.debug(
            "configuration_loaded",
            taskfile=str(config.taskfile),
            image_format=config.image_format,
            logging_level=config.logging_level,
        )
        return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Every field can be overridden with ``TASKDEP_<FIELD>``, for example
        ``TASKDEP_RENDERER`` or ``TASKDEP_OPEN_VIEWER``.

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        for name, field in cls.model_fields.items():
            env_var = f"{ENV_PREFIX}{name.upper()}"
            value = os.environ.get(env_var)
            if value is None:
                continue

            if field.annotation is bool:
                config_data[name] = value.strip().lower() in TRUTHY
            else:
                config_data[name] = value
            logger.debug("env_override_applied", env_var=env_var, field=name)

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if self.cycle_color.lower() == "black":
            warnings.append(
                "Cycle colour is black, the default edge colour - cycles will not stand out",
            )

        if self.render_timeout_seconds < SHORT_TIMEOUT_THRESHOLD:
            warnings.append(
                f"Render timeout is short ({self.render_timeout_seconds}s) - "
                "large graphs may fail to render",
            )

        if self.output is not None and self.output.suffix.lstrip(".") != self.image_format:
            warnings.append(
                f"Output file {self.output} does not match image format '{self.image_format}'",
            )

        return warnings


def load_config(config_path: str | Path | None = None) -> TaskdepConfig:
    """Load configuration from file, falling back to defaults.

    Args:
        config_path: Path to configuration file. If None, looks for
            .taskdep.yaml or .taskdep.yml in the current directory and uses
            defaults (plus environment overrides) when neither exists.

    Returns:
        Loaded TaskdepConfig instance

    Raises:
        FileNotFoundError: If an explicit config file is not found
        ValueError: If the config file is invalid
    """
    if config_path is None:
        for default_name in DEFAULT_CONFIG_FILES:
            if Path(default_name).exists():
                config_path = default_name
                break
        else:
            return TaskdepConfig.from_mapping()

    return TaskdepConfig.from_yaml(config_path)


__all__ = ["TaskdepConfig", "load_config"]
