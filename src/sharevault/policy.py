"""Centralised runtime configuration.

Defaults can be overridden by a YAML file (``SHAREVAULT_CONFIG`` or an
explicit path) and then by individual environment variables, so that
deployments can tune limits without code changes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

_logger = logging.getLogger(__name__)


def _load_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _load_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return default


@dataclass(frozen=True)
class SharePolicy:
    """Holds tunables for sharing defaults and file limits."""

    default_shares: int = 5
    default_threshold: int = 3
    key_bytes: int = 32
    max_file_size_mb: int = 512
    min_free_space_mb: int = 64
    headroom_mb: int = 16
    audit_enabled: bool = True


def _read_config_file(path: str | os.PathLike[str] | None) -> Dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path).expanduser()
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        _logger.warning("Config file %s not found, using defaults", config_path)
        return {}
    except yaml.YAMLError as exc:
        _logger.warning("Config file %s is not valid YAML: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    known = {f.name for f in fields(SharePolicy)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            _logger.warning("Ignoring unknown config key %r", key)
            continue
        if key == "audit_enabled":
            if isinstance(value, bool):
                values[key] = value
        elif isinstance(value, int) and not isinstance(value, bool):
            values[key] = value
    return values


def load_policy(path: str | os.PathLike[str] | None = None) -> SharePolicy:
    """Load the policy from defaults, an optional YAML file and the environment."""

    base = SharePolicy(**_read_config_file(path or os.environ.get("SHAREVAULT_CONFIG")))
    return SharePolicy(
        default_shares=_load_int("SHAREVAULT_DEFAULT_SHARES", base.default_shares),
        default_threshold=_load_int("SHAREVAULT_DEFAULT_THRESHOLD", base.default_threshold),
        key_bytes=_load_int("SHAREVAULT_KEY_BYTES", base.key_bytes),
        max_file_size_mb=_load_int("SHAREVAULT_MAX_FILE_MB", base.max_file_size_mb),
        min_free_space_mb=_load_int("SHAREVAULT_MIN_FREE_MB", base.min_free_space_mb),
        headroom_mb=_load_int("SHAREVAULT_HEADROOM_MB", base.headroom_mb),
        audit_enabled=_load_bool("SHAREVAULT_AUDIT", base.audit_enabled),
    )


policy = load_policy()


__all__ = ["SharePolicy", "policy", "load_policy"]
