#
# config/loader.py
#
"""
Loads the alertd TOML configuration, applies environment overrides, and keeps
the engine's own config.yaml in step with the effective settings.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import structlog
import yaml

from alertd.config.models import (
    ElasticsearchConfig,
    EngineConfig,
    GlobalConfig,
    ListenConfig,
    PathsConfig,
    ServerConfig,
)
from alertd.exceptions import ConfigurationError
from alertd.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

# Engine config.yaml key -> [elasticsearch] key
_ENGINE_CONNECTION_KEYS = {
    "es_host": "host",
    "es_port": "port",
    "es_username": "username",
    "es_password": "password",
    "use_ssl": "use_ssl",
    "writeback_index": "writeback_index",
}


def _read_toml(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in '{config_path}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Unable to read config file '{config_path}': {e}") from e


def read_engine_yaml(config_file: Path) -> dict[str, Any]:
    """Reads the engine's config.yaml, returning an empty mapping if absent."""
    if not config_file.is_file():
        log.info("No engine config.yaml found", path=str(config_file))
        return {}
    try:
        with config_file.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read engine config '{config_file}': {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Engine config '{config_file}' must be a YAML mapping")
    return data


def _resolve(base_dir: Path, value: str | os.PathLike | None) -> Path | None:
    if value is None:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else (base_dir / path).resolve()


def _env_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got '{raw}'") from e


def parse_elasticsearch_url(url: str) -> dict[str, Any]:
    """Splits an ELASTICSEARCH_URL into the [elasticsearch] fields it defines."""
    parts = urlsplit(url)
    if not parts.hostname:
        raise ConfigurationError(f"ELASTICSEARCH_URL has no host: '{url}'")
    try:
        port = parts.port or 9200
    except ValueError as e:
        raise ConfigurationError(f"ELASTICSEARCH_URL has an invalid port: '{url}'") from e
    return {
        "host": parts.hostname,
        "port": port,
        "username": unquote(parts.username) if parts.username else None,
        "password": unquote(parts.password) if parts.password else None,
        "use_ssl": parts.scheme == "https",
    }


def _apply_env_overrides(raw: dict[str, Any], env: Mapping[str, str]) -> None:
    engine = raw.setdefault("engine", {})
    paths = raw.setdefault("paths", {})
    es = raw.setdefault("elasticsearch", {})
    server = raw.setdefault("server", {})
    global_section = raw.setdefault("global", {})

    if env.get("ELASTALERT_PATH"):
        engine["path"] = env["ELASTALERT_PATH"]
    if env.get("DATA_PATH"):
        paths["data"] = env["DATA_PATH"]
    if env.get("TEMPLATES_PATH"):
        paths["templates"] = env["TEMPLATES_PATH"]
    if env.get("RULES_PATH"):
        paths["rules"] = env["RULES_PATH"]
    if (port := _env_int(env, "PORT")) is not None:
        server["port"] = port
    if (wsport := _env_int(env, "WSPORT")) is not None:
        server["wsport"] = wsport
    if env.get("ELASTALERT_INDEX"):
        es["writeback_index"] = env["ELASTALERT_INDEX"]
    if env.get("ELASTICSEARCH_URL"):
        es.update(parse_elasticsearch_url(env["ELASTICSEARCH_URL"]))
        log.info("Elasticsearch connection taken from ELASTICSEARCH_URL", host=es["host"], port=es["port"])
    if env.get("ALERTD_LOG_LEVEL"):
        global_section["log_level"] = env["ALERTD_LOG_LEVEL"]


def load_config(config_path: Path, env: Mapping[str, str] | None = None) -> ServerConfig:
    """
    Loads and validates the configuration.

    Precedence: environment variables > TOML file > engine config.yaml > defaults.

    Raises:
        ConfigurationError: If the file cannot be parsed or a value is invalid.
    """
    env = os.environ if env is None else env
    config_path = Path(config_path)
    base_dir = config_path.resolve().parent
    log.debug("Loading configuration", path=str(config_path))

    raw = _read_toml(config_path)
    _apply_env_overrides(raw, env)

    engine_raw = dict(raw.get("engine", {}))
    paths_raw = dict(raw.get("paths", {}))
    es_raw = dict(raw.get("elasticsearch", {}))

    if "path" not in engine_raw:
        raise ConfigurationError("Missing required key 'engine.path' in TOML config (or ELASTALERT_PATH)")
    if "data" not in paths_raw:
        raise ConfigurationError("Missing required key 'paths.data' in TOML config (or DATA_PATH)")

    engine_raw["path"] = _resolve(base_dir, engine_raw["path"])
    engine_yaml = read_engine_yaml(engine_raw["path"] / "config.yaml")

    for yaml_key, es_key in _ENGINE_CONNECTION_KEYS.items():
        if es_key not in es_raw and engine_yaml.get(yaml_key) is not None:
            es_raw[es_key] = engine_yaml[yaml_key]

    paths_raw["data"] = _resolve(base_dir, paths_raw["data"])
    paths_raw["templates"] = _resolve(base_dir, paths_raw.get("templates"))
    if paths_raw.get("rules") is not None:
        paths_raw["rules"] = _resolve(base_dir, paths_raw["rules"])
    elif engine_yaml.get("rules_folder"):
        paths_raw["rules"] = _resolve(engine_raw["path"], engine_yaml["rules_folder"])

    try:
        config = ServerConfig(
            engine=EngineConfig(**engine_raw),
            paths=PathsConfig(**paths_raw),
            elasticsearch=ElasticsearchConfig(**es_raw),
            server=ListenConfig(**raw.get("server", {})),
            global_config=GlobalConfig(**raw.get("global", {})),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration in TOML file '{config_path}': {e}") from e

    log.info(
        "Configuration loaded",
        engine_path=str(config.engine.path),
        data_path=str(config.paths.data),
        es_host=config.elasticsearch.host,
    )
    return config


def sync_engine_config(config: ServerConfig, env: Mapping[str, str] | None = None) -> Path:
    """
    Writes the effective connection settings back into the engine's config.yaml
    and creates the data directories.

    Returns:
        The path of the written config.yaml.
    """
    env = os.environ if env is None else env
    config_file = config.engine.config_file
    engine_yaml = read_engine_yaml(config_file)

    es = config.elasticsearch
    engine_yaml.update({
        "es_host": es.host,
        "es_port": es.port,
        "use_ssl": es.use_ssl,
    })
    if es.username is not None:
        engine_yaml["es_username"] = es.username
    if es.password is not None:
        engine_yaml["es_password"] = es.password
    if es.writeback_index:
        engine_yaml["writeback_index"] = es.writeback_index
    if config.paths.rules is not None:
        engine_yaml["rules_folder"] = str(config.paths.rules)
    if (minutes := _env_int(env, "ELASTALERT_INTERVAL_MINUTES")) is not None:
        run_every = engine_yaml.get("run_every")
        if not isinstance(run_every, dict):
            run_every = {}
        run_every["minutes"] = minutes
        engine_yaml["run_every"] = run_every

    for directory in (config.paths.data, config.paths.rules, config.paths.templates):
        if directory is None:
            continue
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning("Could not create directory", path=str(directory), error=str(e))

    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with config_file.open("w", encoding="utf-8") as f:
            yaml.safe_dump(engine_yaml, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Unable to write engine config '{config_file}': {e}") from e

    log.info("Engine config synchronised", path=str(config_file))
    return config_file


# 🔼⚙️
