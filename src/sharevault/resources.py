"""Free-space checks run before a container or its share files are written.

A protected file produces two kinds of output: the container next to
``dest_path`` and one small share file per share under ``shares_dir``.
Both locations are checked, and when they live on the same filesystem
their demands are added up before comparing with the free space.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import Dict, List

from . import policy as policy_module
from .cipher import HEADER_STRUCT, NONCE_SIZE, TAG_SIZE
from .encoding import share_file_size
from .field import DEFAULT_FIELD, PrimeField

_MB = 1024 * 1024
CONTAINER_OVERHEAD = NONCE_SIZE + HEADER_STRUCT.size + TAG_SIZE


class ResourceError(RuntimeError):
    """Raised when there is not enough free space to finish an operation."""


@dataclass(frozen=True)
class DiskCapacity:
    total: int
    used: int
    free: int


@dataclass
class _Demand:
    directory: str
    required: int
    purposes: List[str]


def _existing_ancestor(path: str) -> str:
    """Closest existing directory at or above *path*."""
    current = os.path.abspath(os.path.expanduser(path))
    while not os.path.isdir(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


def _device_of(directory: str) -> int:
    return os.stat(directory).st_dev


def _capacity_for(directory: str) -> DiskCapacity:
    usage = shutil.disk_usage(directory)
    return DiskCapacity(total=usage.total, used=usage.used, free=usage.free)


def _require_bytes(demand: _Demand) -> None:
    current = policy_module.policy
    capacity = _capacity_for(demand.directory)
    needed = max(demand.required + current.headroom_mb * _MB, current.min_free_space_mb * _MB)
    if capacity.free < needed:
        raise ResourceError(
            f"Not enough free space in {demand.directory} for the "
            f"{' and '.join(demand.purposes)}: need {needed / _MB:.1f} MB, "
            f"{capacity.free / _MB:.1f} MB available."
        )


def ensure_pack_capacity(
    src_path: str,
    dest_path: str,
    shares_dir: str | None = None,
    *,
    share_count: int = 0,
    field: PrimeField = DEFAULT_FIELD,
) -> None:
    """Ensure there is room for the container and ``share_count`` share files."""

    demands: Dict[int, _Demand] = {}

    def add(directory: str, required: int, purpose: str) -> None:
        device = _device_of(directory)
        if device in demands:
            demands[device].required += required
            demands[device].purposes.append(purpose)
        else:
            demands[device] = _Demand(directory, required, [purpose])

    container_dir = _existing_ancestor(os.path.dirname(os.path.abspath(dest_path)))
    add(container_dir, os.path.getsize(src_path) + CONTAINER_OVERHEAD, "container")
    if shares_dir is not None and share_count > 0:
        add(_existing_ancestor(shares_dir), share_count * share_file_size(field), "share files")
    for demand in demands.values():
        _require_bytes(demand)


def ensure_unpack_capacity(src_path: str, dest_path: str) -> None:
    """Ensure there is room for the plaintext recovered from *src_path*."""

    size = max(os.path.getsize(src_path) - CONTAINER_OVERHEAD, 0)
    directory = _existing_ancestor(os.path.dirname(os.path.abspath(dest_path)))
    _require_bytes(_Demand(directory, size, ["decrypted file"]))


__all__ = [
    "CONTAINER_OVERHEAD",
    "DiskCapacity",
    "ResourceError",
    "ensure_pack_capacity",
    "ensure_unpack_capacity",
]
