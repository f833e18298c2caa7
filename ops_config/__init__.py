"""
ops_config -- default settings for each workflow scope.

Responsibility:
    Ships the factory defaults for the ``requests`` and ``planner`` settings
    scopes as YAML and exposes them through ``get_default_settings()``.
    Module services seed these into the ``workflow_settings`` table on
    ``initialize()``; from then on the table is the source of truth.

Architecture position:
    Configuration -- sits beside ``ops_kernel`` and below ``ops_modules``.
    The kernel MUST NEVER import from ``ops_config``.

Failure modes:
    - ``FileNotFoundError`` -- no defaults file for the requested scope.
    - ``yaml.YAMLError`` -- malformed defaults file.
    - ``ValueError`` -- defaults file does not contain a mapping.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ops_config.loader import compute_checksum, load_yaml_file

_logger = logging.getLogger("ops_kernel.config")

_DEFAULTS_DIR = Path(__file__).parent / "defaults"

__all__ = [
    "available_scopes",
    "compute_checksum",
    "get_default_settings",
]


def available_scopes(defaults_dir: Path | None = None) -> list[str]:
    """Scopes that have a defaults file."""
    directory = defaults_dir or _DEFAULTS_DIR
    return sorted(p.stem for p in directory.glob("*.yaml"))


def get_default_settings(scope: str, defaults_dir: Path | None = None) -> dict[str, Any]:
    """
    Load the factory defaults for ``scope``.

    Returns a fresh dict on every call; callers may mutate it freely.
    """
    directory = defaults_dir or _DEFAULTS_DIR
    path = directory / f"{scope}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"No default settings for scope '{scope}' in {directory}")

    data = load_yaml_file(path)
    if not isinstance(data, dict):
        raise ValueError(f"Default settings for '{scope}' must be a mapping, got {type(data).__name__}")

    _logger.info(
        "OPS_CONFIG_DEFAULTS_LOADED",
        extra={
            "scope": scope,
            "keys": sorted(data),
            "checksum": compute_checksum(data),
        },
    )
    return data
