"""Offline audit log with Ed25519 signatures and hash chaining.

Each event is written to its own JSON file. Events describe what happened
(share counts, thresholds, x-coordinates, file names) and never carry the
secret, coefficients or share values.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from filelock import FileLock

_logger = logging.getLogger(__name__)

GENESIS = "GENESIS"


def audit_dir() -> Path:
    """Return the directory where audit artefacts are stored.

    ``SHAREVAULT_AUDIT_DIR`` overrides the default ``~/.sharevault_audit``.
    The directory is created on first use.
    """

    override = os.environ.get("SHAREVAULT_AUDIT_DIR")
    directory = Path(override).expanduser() if override else Path.home() / ".sharevault_audit"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _key_path(directory: Path) -> Path:
    return directory / "signing_key.pem"


def _chain_state_path(directory: Path) -> Path:
    return directory / "chain.state"


def _load_private_key(directory: Path) -> Ed25519PrivateKey:
    key_path = _key_path(directory)
    if key_path.exists():
        return serialization.load_pem_private_key(key_path.read_bytes(), password=None)
    private_key = Ed25519PrivateKey.generate()
    key_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    os.chmod(key_path, 0o600)
    return private_key


def _load_prev_hash(directory: Path) -> str:
    try:
        return _chain_state_path(directory).read_text().strip() or GENESIS
    except FileNotFoundError:
        return GENESIS


def _canonical(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True).encode("utf-8")


def record_event(event: str, *, details: Dict[str, Any] | None = None) -> Path:
    """Append *event* to the chain and return the path of the written entry."""
    directory = audit_dir()
    with FileLock(str(directory / "chain.lock")):
        payload = {
            "event": event,
            "details": details or {},
            "timestamp": int(time.time()),
            "prev_hash": _load_prev_hash(directory),
        }
        message = _canonical(payload)
        signature = _load_private_key(directory).sign(message)
        chain_hash = hashlib.sha3_512(message + signature).hexdigest()
        entry = {
            "payload": payload,
            "signature": signature.hex(),
            "chain_hash": chain_hash,
        }
        file_path = directory / f"audit_{payload['timestamp']}_{uuid.uuid4().hex}.json"
        file_path.write_text(json.dumps(entry, ensure_ascii=False, indent=2))
        _chain_state_path(directory).write_text(chain_hash)
    _logger.debug("Recorded audit event %s", event)
    return file_path


def verify_log(path: os.PathLike[str] | str) -> bool:
    """Check the signature and chain hash of a single audit entry."""
    data = json.loads(Path(path).read_text())
    payload = _canonical(data["payload"])
    signature = bytes.fromhex(data.get("signature") or "")
    public_key = _load_private_key(audit_dir()).public_key()
    try:
        public_key.verify(signature, payload)
    except InvalidSignature:
        return False
    return hashlib.sha3_512(payload + signature).hexdigest() == data.get("chain_hash")


__all__ = ["GENESIS", "audit_dir", "record_event", "verify_log"]
