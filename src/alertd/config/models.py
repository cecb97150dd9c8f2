#
# config/models.py
#
"""
Attrs-based data models for alertd configuration structure.
"""

import logging
from pathlib import Path
from typing import Any

from attrs import define, field


def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_port(inst: Any, attr: Any, value: int) -> None:
    if not isinstance(value, int) or not 0 < value < 65536:
        raise ValueError(f"Field '{attr.name}' must be a TCP port number, got {value}")


def _validate_positive_float(inst: Any, attr: Any, value: float) -> None:
    if not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value}")


@define(frozen=True, slots=True)
class EngineConfig:
    """Where the ElastAlert installation lives and how to invoke it."""
    path: Path = field(converter=Path)
    python: str = field(default="python3")
    index_module: str = field(default="elastalert.create_index")
    run_module: str = field(default="elastalert.elastalert")
    test_module: str = field(default="elastalert.test_rule")
    # Seconds between SIGINT and a forced kill on stop().
    stop_timeout: float = field(default=10.0, validator=_validate_positive_float)

    @property
    def config_file(self) -> Path:
        return self.path / "config.yaml"

    def module_argv(self, module: str) -> list[str]:
        """Base argv for `python -m <module> --config <install>/config.yaml`."""
        return [self.python, "-m", module, "--config", str(self.config_file)]


@define(frozen=True, slots=True)
class ElasticsearchConfig:
    """Connection parameters handed to the engine."""
    host: str | None = field(default=None)
    port: int = field(default=9200, validator=_validate_port)
    use_ssl: bool = field(default=False)
    username: str | None = field(default=None)
    password: str | None = field(default=None, repr=False)
    writeback_index: str | None = field(default=None)

    def as_environment(self) -> dict[str, str]:
        """The ES_* variables understood by the engine's test command."""
        values = {
            "ES_HOST": self.host,
            "ES_PORT": str(self.port),
            "ES_USE_SSL": "true" if self.use_ssl else "false",
            "ES_USERNAME": self.username,
            "ES_PASSWORD": self.password,
        }
        return {key: value for key, value in values.items() if value is not None}


@define(frozen=True, slots=True)
class PathsConfig:
    """Data directories used by the server."""
    data: Path = field(converter=Path)
    rules: Path | None = field(default=None)
    templates: Path | None = field(default=None)

    @property
    def tests(self) -> Path:
        """Scratch directory for temporary test rule files."""
        return self.data / "tests"


@define(frozen=True, slots=True)
class ListenConfig:
    """Ports of the external HTTP and WebSocket transport."""
    port: int = field(default=3030, validator=_validate_port)
    wsport: int = field(default=3333, validator=_validate_port)


@define(frozen=True, slots=True)
class GlobalConfig:
    """Global default settings for alertd."""
    log_level: str = field(default="INFO", validator=_validate_log_level)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class ServerConfig:
    """Root configuration object for the alertd application."""
    engine: EngineConfig = field()
    paths: PathsConfig = field()
    elasticsearch: ElasticsearchConfig = field(factory=ElasticsearchConfig)
    server: ListenConfig = field(factory=ListenConfig)
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})


# 🔼⚙️
