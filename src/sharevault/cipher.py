"""AES-GCM file containers keyed by the shared secret."""
from __future__ import annotations

import logging
import os
import struct
import tempfile
from typing import BinaryIO, Callable, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ContainerError

_logger = logging.getLogger(__name__)

MAGIC = b"SVAE"
VERSION = 1
HEADER_STRUCT = struct.Struct("!4sBB")
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
KEY_SIZES = (16, 24, 32)
CHUNK_SIZE = 256 * 1024
ENCRYPTED_SUFFIX = ".aes"

ProgressCallback = Callable[[float], None]


class OperationCancelled(RuntimeError):
    """Raised when the caller's cancel event fires mid-stream."""


def _check_key(key: bytes | bytearray) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise TypeError("key must be bytes")
    if len(key) not in KEY_SIZES:
        raise ValueError("key must be 16, 24 or 32 bytes")
    return bytes(key)


def _reporter(progress_cb: ProgressCallback | None) -> ProgressCallback:
    def _report(progress: float) -> None:
        if progress_cb:
            progress_cb(min(max(progress, 0.0), 1.0))

    return _report


def _cancel_checker(cancel_event: Optional[object]) -> Callable[[], None]:
    is_set = getattr(cancel_event, "is_set", None)

    def _check() -> None:
        if is_set and is_set():
            raise OperationCancelled("Operation cancelled")

    return _check


def encrypt_stream(
    src: BinaryIO,
    dest: BinaryIO,
    key: bytes | bytearray,
    *,
    total: int | None = None,
    progress_cb: ProgressCallback | None = None,
    cancel_event: Optional[object] = None,
) -> int:
    """Encrypt everything readable from *src* into *dest*; return plaintext size."""
    key = _check_key(key)
    report = _reporter(progress_cb)
    check_cancel = _cancel_checker(cancel_event)
    nonce = os.urandom(NONCE_SIZE)
    header = HEADER_STRUCT.pack(MAGIC, VERSION, len(key))

    encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).encryptor()
    encryptor.authenticate_additional_data(nonce + header)

    dest.write(nonce)
    dest.write(header)
    report(0.0)
    processed = 0
    while True:
        check_cancel()
        chunk = src.read(CHUNK_SIZE)
        if not chunk:
            break
        processed += len(chunk)
        dest.write(encryptor.update(chunk))
        if total:
            report(processed / total)
    check_cancel()
    dest.write(encryptor.finalize())
    dest.write(encryptor.tag)
    report(1.0)
    return processed


def _read_exact(src: BinaryIO, size: int, what: str) -> bytes:
    data = src.read(size)
    if len(data) != size:
        raise ContainerError(f"Container is damaged: truncated {what}")
    return data


def read_header(src: BinaryIO) -> Tuple[bytes, bytes, int]:
    """Consume the nonce and header from *src*; return ``(nonce, header, key_size)``."""
    nonce = _read_exact(src, NONCE_SIZE, "nonce")
    header = _read_exact(src, HEADER_STRUCT.size, "header")
    magic, version, key_size = HEADER_STRUCT.unpack(header)
    if magic != MAGIC:
        raise ContainerError("Not a ShareVault container")
    if version != VERSION:
        raise ContainerError(f"Unsupported container version {version}")
    if key_size not in KEY_SIZES:
        raise ContainerError(f"Container declares an unsupported {key_size}-byte key")
    return nonce, header, key_size


def container_key_size(path: str | os.PathLike[str]) -> int:
    """Key width in bytes recorded in the container at *path*."""
    with open(path, "rb") as src:
        return read_header(src)[2]


def decrypt_stream(
    src: BinaryIO,
    dest: BinaryIO,
    key: bytes | bytearray,
    *,
    total: int | None = None,
    progress_cb: ProgressCallback | None = None,
    cancel_event: Optional[object] = None,
) -> int:
    """Decrypt a container from *src* into *dest*; return plaintext size.

    Plaintext is written before the tag is checked, so *dest* must be
    discarded when :class:`ContainerError` is raised.
    """
    key = _check_key(key)
    report = _reporter(progress_cb)
    check_cancel = _cancel_checker(cancel_event)

    nonce, header, key_size = read_header(src)
    if key_size != len(key):
        raise ContainerError(
            f"Container was sealed with a {key_size}-byte key, got {len(key)} bytes"
        )

    payload_total = None
    if total is not None:
        payload_total = total - NONCE_SIZE - HEADER_STRUCT.size - TAG_SIZE

    decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).decryptor()
    decryptor.authenticate_additional_data(nonce + header)

    report(0.0)
    pending = b""
    processed = 0
    while True:
        check_cancel()
        chunk = src.read(CHUNK_SIZE)
        if not chunk:
            break
        pending += chunk
        if len(pending) > TAG_SIZE:
            body, pending = pending[:-TAG_SIZE], pending[-TAG_SIZE:]
            processed += len(body)
            dest.write(decryptor.update(body))
            if payload_total:
                report(processed / payload_total)
    if len(pending) != TAG_SIZE:
        raise ContainerError("Container is damaged: authentication tag is missing")
    check_cancel()
    try:
        dest.write(decryptor.finalize_with_tag(pending))
    except InvalidTag as exc:
        _logger.warning("Container authentication failed")
        raise ContainerError("Wrong key or damaged container") from exc
    report(1.0)
    return processed


def _staged_write(dest_path: str, work: Callable[[BinaryIO], int]) -> int:
    tmp_dir = os.path.dirname(os.path.abspath(dest_path)) or None
    tmp_file = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=tmp_dir, delete=False) as tmp:
            tmp_file = tmp.name
            size = work(tmp)
        os.replace(tmp_file, dest_path)
        return size
    except Exception:
        if tmp_file and os.path.exists(tmp_file):
            try:
                os.unlink(tmp_file)
            except OSError:
                pass
        raise


def encrypt_file(
    src_path: str,
    dest_path: str,
    key: bytes | bytearray,
    *,
    progress_cb: ProgressCallback | None = None,
    cancel_event: Optional[object] = None,
) -> int:
    """Encrypt *src_path* into *dest_path* atomically."""
    total = os.path.getsize(src_path)
    with open(src_path, "rb") as src:
        size = _staged_write(
            dest_path,
            lambda tmp: encrypt_stream(
                src, tmp, key, total=total, progress_cb=progress_cb, cancel_event=cancel_event
            ),
        )
    _logger.info("Encrypted %d bytes into %s", size, dest_path)
    return size


def decrypt_file(
    src_path: str,
    dest_path: str,
    key: bytes | bytearray,
    *,
    progress_cb: ProgressCallback | None = None,
    cancel_event: Optional[object] = None,
) -> int:
    """Decrypt *src_path* into *dest_path*; nothing is written if the tag fails."""
    total = os.path.getsize(src_path)
    with open(src_path, "rb") as src:
        size = _staged_write(
            dest_path,
            lambda tmp: decrypt_stream(
                src, tmp, key, total=total, progress_cb=progress_cb, cancel_event=cancel_event
            ),
        )
    _logger.info("Decrypted %d bytes into %s", size, dest_path)
    return size


__all__ = [
    "CHUNK_SIZE",
    "ENCRYPTED_SUFFIX",
    "KEY_SIZE",
    "KEY_SIZES",
    "OperationCancelled",
    "container_key_size",
    "decrypt_file",
    "decrypt_stream",
    "encrypt_file",
    "encrypt_stream",
    "read_header",
]
