"""
YAML loading helpers for ops_config.

Invariants enforced:
    - Files are parsed with ``yaml.safe_load``; no arbitrary object
      construction.
    - Checksums are taken over canonical JSON (sorted keys), so identical
      settings always hash identically.

Failure modes:
    * Missing file     -> ``FileNotFoundError`` propagates.
    * Malformed YAML   -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents.

    Returns an empty dict for an empty file.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
