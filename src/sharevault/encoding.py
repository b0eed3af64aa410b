"""Serialisation of shares and keys.

The binary form is preferred: a small header followed by ``x`` and ``y`` as
fixed-width big-endian field elements. The text form ``"(x, y)"`` mirrors
what the command line prints.
"""
from __future__ import annotations

import os
import re
import struct
from pathlib import Path
from typing import Iterable, Tuple

from .errors import ShareFormatError
from .field import DEFAULT_FIELD, PrimeField
from .shares import Share, ShareSet

MAGIC = b"SVSH"
VERSION = 1
HEADER_STRUCT = struct.Struct("!4sBHH")
SHARE_SUFFIX = ".svs"

_TEXT_RE = re.compile(r"^\s*\(\s*(\d+)\s*,\s*(\d+)\s*\)\s*$")


def encode_share(share: Share, threshold: int, field: PrimeField = DEFAULT_FIELD) -> bytes:
    header = HEADER_STRUCT.pack(MAGIC, VERSION, threshold, field.byte_length)
    return header + field.to_bytes(share.x) + field.to_bytes(share.y)


def decode_share(data: bytes, field: PrimeField = DEFAULT_FIELD) -> Tuple[Share, int]:
    """Return ``(share, threshold)`` from the binary encoding."""
    if len(data) < HEADER_STRUCT.size:
        raise ShareFormatError("Share data is truncated")
    magic, version, threshold, width = HEADER_STRUCT.unpack_from(data)
    if magic != MAGIC:
        raise ShareFormatError("Not a share: unknown magic")
    if version != VERSION:
        raise ShareFormatError(f"Unsupported share version {version}")
    if width != field.byte_length:
        raise ShareFormatError(
            f"Share was encoded for a {width * 8}-bit field, expected {field.byte_length * 8}-bit"
        )
    body = data[HEADER_STRUCT.size:]
    if len(body) != 2 * width:
        raise ShareFormatError("Share body has the wrong length")
    try:
        x = field.from_bytes(body[:width])
        y = field.from_bytes(body[width:])
    except ValueError as exc:
        raise ShareFormatError(str(exc)) from exc
    if x == 0:
        raise ShareFormatError("Share x-coordinate must not be zero")
    return Share(x, y), threshold


def format_share(share: Share) -> str:
    return f"({share.x}, {share.y})"


def parse_share(text: str) -> Share:
    match = _TEXT_RE.match(text)
    if not match:
        raise ShareFormatError("Expected a share of the form '(x, y)'")
    return Share(int(match.group(1)), int(match.group(2)))


def share_filename(share: Share) -> str:
    return f"share-{share.x}{SHARE_SUFFIX}"


def write_share_file(
    path: str | os.PathLike[str], share: Share, threshold: int, field: PrimeField = DEFAULT_FIELD
) -> Path:
    target = Path(path)
    target.write_bytes(encode_share(share, threshold, field))
    return target


def read_share_file(path: str | os.PathLike[str], field: PrimeField = DEFAULT_FIELD) -> Tuple[Share, int]:
    try:
        return decode_share(Path(path).read_bytes(), field)
    except ShareFormatError as exc:
        raise ShareFormatError(f"{path}: {exc}") from exc


def share_file_size(field: PrimeField = DEFAULT_FIELD) -> int:
    """Exact size in bytes of a binary share file for *field*."""
    return HEADER_STRUCT.size + 2 * field.byte_length


def write_share_set(directory: str | os.PathLike[str], share_set: ShareSet) -> list[Path]:
    """Write one file per share into *directory* and return their paths.

    Files already written are removed again if a later one fails.
    """
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    try:
        for s in share_set:
            written.append(
                write_share_file(root / share_filename(s), s, share_set.threshold, share_set.field)
            )
    except OSError:
        remove_share_files(written)
        raise
    return written


def remove_share_files(paths: Iterable[str | os.PathLike[str]]) -> None:
    for path in paths:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def load_share_set(paths: Iterable[str | os.PathLike[str]], field: PrimeField = DEFAULT_FIELD) -> ShareSet:
    """Read share files that must all agree on the threshold."""
    shares = []
    thresholds = set()
    for path in paths:
        share, threshold = read_share_file(path, field)
        shares.append(share)
        thresholds.add(threshold)
    if not shares:
        raise ShareFormatError("No share files given")
    if len(thresholds) != 1:
        raise ShareFormatError("Share files were produced with different thresholds")
    return ShareSet(tuple(shares), thresholds.pop(), field)


def secret_from_key(key: bytes, field: PrimeField = DEFAULT_FIELD) -> int:
    """Interpret a symmetric key as a field element."""
    if len(key) * 8 >= field.bit_length:
        raise ValueError(f"A {len(key)}-byte key does not fit the {field.bit_length}-bit field")
    return int.from_bytes(key, "big")


def key_from_secret(secret: int, width: int) -> bytes:
    try:
        return secret.to_bytes(width, "big")
    except OverflowError as exc:
        raise ValueError(f"Recovered secret does not fit in {width} bytes") from exc


__all__ = [
    "HEADER_STRUCT",
    "MAGIC",
    "SHARE_SUFFIX",
    "VERSION",
    "decode_share",
    "encode_share",
    "format_share",
    "key_from_secret",
    "load_share_set",
    "parse_share",
    "read_share_file",
    "remove_share_files",
    "secret_from_key",
    "share_file_size",
    "share_filename",
    "write_share_file",
    "write_share_set",
]
