# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import json
import logging
from pathlib import Path
from typing import Any, ClassVar

import tomllib
import yaml


DEFAULT_CONFIG: dict[str, Any] = {
    # Receiving canvas; offsets and target dimensions are validated against it
    "canvas": {"width": 1920, "height": 1080},
    "image": {
        # method: lanczos | bicubic | hamming | bilinear | box | nearest
        "method": "lanczos",
        # Convert embedded ICC profiles to sRGB for consistent color
        "color_correction": True,
    },
    "dispatch": {
        "rate_ms": 50,  # rest between full passes over a work unit
        "repeat": None,  # passes per worker; None = run until interrupted
        "granularity": "row",  # "row" | "pixel"
        "stagger_ms": 1.0,  # initial delay per stagger slot
        "failure_pause_ms": 0.0,  # extra pause after a failed probe (0 disables)
        "max_workers_warn": 4096,
    },
    "net": {
        "transport": "icmpv6",  # "icmpv6" | "null"
        "timeout_ms": None,  # per-probe send timeout; None = same as rate_ms
        "payload": "pingas",
        "sndbuf": 1 << 20,
    },
    "log": {
        "level": "info",
        "rate_ms": 5000,
        "metrics": True,
    },
}


def load_config_file(path: str) -> dict[str, Any]:
    """Load configuration from a file (YAML, TOML, or JSON)."""
    logger = logging.getLogger("config")
    path_obj = Path(path)
    ext = path_obj.suffix.lower()

    if not path_obj.exists():
        logger.warning(f"Config file not found: {path}")
        return {}

    try:
        if ext in (".yaml", ".yml"):
            with path_obj.open(encoding="utf-8") as f:
                return yaml.safe_load(f) or {}

        elif ext == ".toml":
            with path_obj.open("rb") as f:
                return tomllib.load(f) or {}

        elif ext == ".json":
            with path_obj.open(encoding="utf-8") as f:
                return json.load(f) or {}

        else:
            logger.warning(f"Unknown config extension: {ext}")
            return {}

    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load {path}: {e}")
        return {}


def deep_update(dst: dict[str, Any], src: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries."""
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


def load_config(path: str | None = None) -> dict[str, Any]:
    """Load configuration with defaults and optional file override."""
    cfg = json.loads(json.dumps(DEFAULT_CONFIG))  # Deep copy

    if path:
        deep_update(cfg, load_config_file(path))

    return cfg


class Config:
    """Configuration singleton."""

    _instance: ClassVar["Config | None"] = None
    _config: ClassVar[dict[str, Any]] = load_config()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def load(cls, path: str | None = None) -> None:
        """Load configuration from file."""
        cls._config = load_config(path)

    @classmethod
    def get(cls, key: str | None = None) -> Any:
        """Get configuration value by key path (e.g., 'dispatch.rate_ms')."""
        if key is None:
            return cls._config

        value = cls._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                raise KeyError(f"Configuration key not found: {key}")

        return value
