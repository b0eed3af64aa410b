"""Argument checks for the command line workflows.

Each ``validate_*`` helper returns a list of :class:`ValidationIssue` so
that the CLI can report every problem at once and exit with status 2
before any key material is drawn or any file is written.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from . import policy as policy_module
from .cipher import HEADER_STRUCT as CONTAINER_HEADER
from .cipher import MAGIC as CONTAINER_MAGIC
from .cipher import NONCE_SIZE, TAG_SIZE
from .encoding import MAGIC as SHARE_MAGIC
from .encoding import share_file_size
from .field import DEFAULT_FIELD, PrimeField

_MAX_THRESHOLD = 0xFFFF


@dataclass
class ValidationIssue:
    field: str
    message: str


def _normalize(path: str | None) -> str:
    return os.path.expanduser((path or "").strip())


def _existing_file(path: str | None, name: str) -> tuple[str, list[ValidationIssue]]:
    normalized = _normalize(path)
    if not normalized:
        return normalized, [ValidationIssue(name, "A path is required.")]
    if not os.path.exists(normalized):
        return normalized, [ValidationIssue(name, f"File not found: {normalized}")]
    if not os.path.isfile(normalized):
        return normalized, [ValidationIssue(name, f"Not a regular file: {normalized}")]
    return normalized, []


def _read_prefix(path: str, size: int) -> bytes:
    with open(path, "rb") as handle:
        return handle.read(size)


def validate_input_file(path: str, *, max_size_mb: int | None = None) -> list[ValidationIssue]:
    """A plaintext file to protect: present and under the configured size limit."""
    normalized, issues = _existing_file(path, "input_path")
    if issues:
        return issues
    limit_mb = max_size_mb if max_size_mb is not None else policy_module.policy.max_file_size_mb
    if os.path.getsize(normalized) > limit_mb * 1024 * 1024:
        issues.append(ValidationIssue("input_path", f"File is larger than the {limit_mb} MB limit."))
    return issues


def validate_container(path: str) -> list[ValidationIssue]:
    """An encrypted container: long enough to hold nonce, header and tag, with our magic."""
    normalized, issues = _existing_file(path, "container")
    if issues:
        return issues
    if os.path.getsize(normalized) < NONCE_SIZE + CONTAINER_HEADER.size + TAG_SIZE:
        return [ValidationIssue("container", f"{normalized} is too short to be a container.")]
    prefix = _read_prefix(normalized, NONCE_SIZE + len(CONTAINER_MAGIC))
    if prefix[NONCE_SIZE:] != CONTAINER_MAGIC:
        issues.append(ValidationIssue("container", f"{normalized} is not a ShareVault container."))
    return issues


def validate_share_file(path: str, field: PrimeField = DEFAULT_FIELD) -> list[ValidationIssue]:
    """A binary share file: exact size for *field* and the share magic."""
    normalized, issues = _existing_file(path, "share")
    if issues:
        return issues
    expected = share_file_size(field)
    actual = os.path.getsize(normalized)
    if actual != expected:
        return [
            ValidationIssue(
                "share", f"{normalized} is {actual} bytes, a share file is {expected} bytes."
            )
        ]
    if _read_prefix(normalized, len(SHARE_MAGIC)) != SHARE_MAGIC:
        issues.append(ValidationIssue("share", f"{normalized} is not a share file."))
    return issues


def validate_shares_dir(path: str) -> list[ValidationIssue]:
    """Where share files go: a directory, or a path whose nearest parent is writable."""
    normalized = _normalize(path)
    if not normalized:
        return [ValidationIssue("shares_dir", "A shares directory is required.")]
    if os.path.exists(normalized) and not os.path.isdir(normalized):
        return [ValidationIssue("shares_dir", f"{normalized} exists and is not a directory.")]
    ancestor = os.path.abspath(normalized)
    while not os.path.exists(ancestor):
        ancestor = os.path.dirname(ancestor)
    if not os.path.isdir(ancestor):
        return [ValidationIssue("shares_dir", f"{ancestor} is not a directory.")]
    if not os.access(ancestor, os.W_OK):
        return [ValidationIssue("shares_dir", f"No write permission for {ancestor}.")]
    return []


def validate_output_path(path: str, *, source_path: str | None = None) -> list[ValidationIssue]:
    normalized = _normalize(path)
    if not normalized:
        return [ValidationIssue("output_path", "An output path is required.")]
    if os.path.isdir(normalized):
        return [ValidationIssue("output_path", f"{normalized} is a directory.")]

    directory = os.path.dirname(normalized) or os.getcwd()
    if not os.path.isdir(directory):
        return [ValidationIssue("output_path", f"Directory not found: {directory}")]

    issues: list[ValidationIssue] = []
    if not os.access(directory, os.W_OK):
        issues.append(ValidationIssue("output_path", f"No write permission for {directory}."))
    if source_path and os.path.abspath(normalized) == os.path.abspath(_normalize(source_path)):
        issues.append(ValidationIssue("output_path", "Output would overwrite the input file."))
    return issues


def validate_share_counts(shares: int, threshold: int) -> list[ValidationIssue]:
    """Check ``2 <= threshold <= shares`` and that the threshold fits a share header."""
    issues: list[ValidationIssue] = []
    if threshold < 2:
        issues.append(ValidationIssue("threshold", "Threshold must be at least 2."))
    if shares < threshold:
        issues.append(ValidationIssue("shares", "Share count must not be below the threshold."))
    if threshold > _MAX_THRESHOLD:
        issues.append(ValidationIssue("threshold", f"Threshold must not exceed {_MAX_THRESHOLD}."))
    return issues


def validate_secret(secret: int, field: PrimeField) -> list[ValidationIssue]:
    if field.contains(secret):
        return []
    return [
        ValidationIssue("secret", f"Secret must lie in [0, P) for the {field.bit_length}-bit field.")
    ]


def collect_issues(*sources: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    aggregated: list[ValidationIssue] = []
    for source in sources:
        aggregated.extend(source)
    return aggregated


__all__ = [
    "ValidationIssue",
    "collect_issues",
    "validate_container",
    "validate_input_file",
    "validate_output_path",
    "validate_secret",
    "validate_share_counts",
    "validate_share_file",
    "validate_shares_dir",
]
