"""Protect a file with a random key and split that key into shares."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from . import audit, cipher, encoding
from . import policy as policy_module
from .entropy import EntropySource
from .errors import ContainerError
from .field import DEFAULT_FIELD, PrimeField
from .memory import SecretBytes
from .reconstruct import reconstruct
from .resources import ensure_pack_capacity, ensure_unpack_capacity
from .shares import generate, validate_parameters

_logger = logging.getLogger(__name__)


@dataclass
class ProtectReport:
    """Where the container and the share files ended up."""

    container: Path
    share_paths: List[Path]
    shares: int
    threshold: int


def _audit(event: str, **details) -> None:
    if policy_module.policy.audit_enabled:
        audit.record_event(event, details=details)


def protect_file(
    src_path: str,
    dest_path: str,
    shares_dir: str,
    *,
    shares: int,
    threshold: int,
    key_bytes: int | None = None,
    field: PrimeField = DEFAULT_FIELD,
    progress_cb: Callable[[float], None] | None = None,
    cancel_event: Optional[object] = None,
) -> ProtectReport:
    """Encrypt *src_path* under a fresh key and write ``shares`` share files.

    The share count and threshold are checked before any key material is
    drawn. Share files are written before the container, and removed again
    if encryption fails, so a container never exists without its shares.
    The key buffer is zeroed on every exit path.
    """
    validate_parameters(shares, threshold, field)
    ensure_pack_capacity(src_path, dest_path, shares_dir, share_count=shares, field=field)
    width = key_bytes or policy_module.policy.key_bytes
    entropy = EntropySource(field)
    with SecretBytes(entropy.random_bytes(width)) as key:
        share_set = generate(
            encoding.secret_from_key(bytes(key), field),
            shares,
            threshold,
            field=field,
            entropy=entropy,
        )
        paths = encoding.write_share_set(shares_dir, share_set)
        try:
            cipher.encrypt_file(
                src_path, dest_path, key, progress_cb=progress_cb, cancel_event=cancel_event
            )
        except Exception:
            _logger.warning("Encryption of %s failed, removing its share files", src_path)
            encoding.remove_share_files(paths)
            raise
    _logger.info("Protected %s with %d-of-%d shares", src_path, threshold, shares)
    _audit(
        "vault.protected",
        container=os.path.basename(dest_path),
        shares=shares,
        threshold=threshold,
        key_bytes=width,
    )
    return ProtectReport(Path(dest_path), paths, shares, threshold)


def recover_file(
    src_path: str,
    dest_path: str,
    share_paths: Iterable[str | os.PathLike[str]],
    *,
    field: PrimeField = DEFAULT_FIELD,
    progress_cb: Callable[[float], None] | None = None,
    cancel_event: Optional[object] = None,
) -> int:
    """Rebuild the key from share files and decrypt *src_path*.

    The key width comes from the container header, so containers sealed
    under a different ``key_bytes`` setting still open.
    """
    share_set = encoding.load_share_set(share_paths, field)
    width = cipher.container_key_size(src_path)
    ensure_unpack_capacity(src_path, dest_path)
    secret = reconstruct(share_set, share_set.threshold)
    try:
        raw_key = encoding.key_from_secret(secret, width)
    except ValueError as exc:
        raise ContainerError(
            "Recovered key does not match this container; "
            "were the shares produced for a different file?"
        ) from exc
    finally:
        del secret
    with SecretBytes(raw_key) as key:
        del raw_key
        size = cipher.decrypt_file(
            src_path, dest_path, key, progress_cb=progress_cb, cancel_event=cancel_event
        )
    _logger.info("Recovered %s from %d shares", dest_path, len(share_set))
    _audit(
        "vault.recovered",
        container=os.path.basename(src_path),
        xs=list(share_set.xs),
        threshold=share_set.threshold,
    )
    return size


__all__ = ["ProtectReport", "protect_file", "recover_file"]
