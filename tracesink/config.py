"""Configuration module — frozen dataclass from defaults, YAML, env vars and CLI args."""

import argparse
import logging
import os
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    level: str = "Error"
    file: str = "Log.txt"
    write_retry_delay: float = 1.0
    open_retry_delay: float = 5.0


# YAML key / env var for each field, with the converter applied to raw values
_FIELDS = {
    "level": ("TRACE_LEVEL", str),
    "file": ("TRACE_FILE", str),
    "write_retry_delay": ("TRACE_WRITE_RETRY_DELAY", float),
    "open_retry_delay": ("TRACE_OPEN_RETRY_DELAY", float),
}


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        logger.warning("Invalid YAML in %s, using defaults: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return {key: value for key, value in data.items() if key in _FIELDS}


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Append log messages to a trace file")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument(
        "--level", default=None,
        help="Lowest level to record: Error, Warning, Info, Debug or None (default: Error)",
    )
    parser.add_argument("--file", default=None, help="Trace file path (default: Log.txt)")
    parser.add_argument(
        "--write-retry-delay", type=float, default=None,
        help="Seconds between attempts to write a failed entry (default: 1)",
    )
    parser.add_argument(
        "--open-retry-delay", type=float, default=None,
        help="Seconds between attempts to open the trace file (default: 5)",
    )
    return parser


def _convert(key: str, raw, source: str):
    """Apply the field's converter; returns None and logs if the value is malformed."""
    if raw is None:
        return None
    try:
        return _FIELDS[key][1](raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r from %s, ignoring it", key, raw, source)
        return None


def load_config(argv: list[str] | None = None) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    args = build_cli_parser().parse_args(argv)

    kwargs: dict = {}
    yaml_path = args.config or os.environ.get("TRACE_CONFIG")
    for key, raw in load_yaml_config(yaml_path).items():
        value = _convert(key, raw, yaml_path)
        if value is not None:
            kwargs[key] = value

    for key, (env_var, _) in _FIELDS.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        value = _convert(key, raw, env_var)
        if value is not None:
            kwargs[key] = value

    for key in _FIELDS:
        value = getattr(args, key)
        if value is not None:
            kwargs[key] = value

    return Config(**kwargs)
