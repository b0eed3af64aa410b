"""Test configuration helpers."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    src = Path(__file__).resolve().parent.parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


_ensure_src_on_path()

from sharevault.field import MERSENNE_61, PrimeField  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_audit_dir(tmp_path, monkeypatch):
    """Keep audit entries out of the real home directory."""
    monkeypatch.setenv("SHAREVAULT_AUDIT_DIR", str(tmp_path / "audit"))
    yield


@pytest.fixture(scope="session")
def field61() -> PrimeField:
    return PrimeField(MERSENNE_61)


class CountingReader:
    """os.urandom stand-in that records how many bytes were requested."""

    def __init__(self, source=None) -> None:
        import os

        self.calls = 0
        self.requested = 0
        self._source = source or os.urandom

    def __call__(self, length: int) -> bytes:
        self.calls += 1
        self.requested += length
        return self._source(length)


@pytest.fixture
def counting_reader() -> CountingReader:
    return CountingReader()
