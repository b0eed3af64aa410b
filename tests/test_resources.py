import importlib
import os
from collections import namedtuple

import pytest

from sharevault.encoding import share_file_size
from sharevault.field import MERSENNE_61

Usage = namedtuple("Usage", "total used free")


def reload_policy(monkeypatch, **overrides):
    for key, value in overrides.items():
        monkeypatch.setenv(key, str(value))
    policy_module = importlib.import_module("sharevault.policy")
    return importlib.reload(policy_module), tuple(overrides)


def reset_policy(monkeypatch, policy_module, keys):
    for key in keys:
        monkeypatch.delenv(key, raising=False)
    importlib.reload(policy_module)


@pytest.fixture
def exact_policy(monkeypatch):
    """No headroom and no minimum, so only the bytes to be written count."""
    policy_module, keys = reload_policy(
        monkeypatch, SHAREVAULT_MIN_FREE_MB=0, SHAREVAULT_HEADROOM_MB=0
    )
    yield policy_module
    reset_policy(monkeypatch, policy_module, keys)


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "sample.bin"
    path.write_bytes(b"x" * 1024)
    return path


def test_pack_capacity_blocks_when_space_low(sample, tmp_path, monkeypatch):
    from sharevault import resources as resources_module

    policy_module, keys = reload_policy(
        monkeypatch,
        SHAREVAULT_MIN_FREE_MB=10,
        SHAREVAULT_HEADROOM_MB=4,
    )
    monkeypatch.setattr(
        resources_module.shutil,
        "disk_usage",
        lambda path: Usage(total=100, used=0, free=5 * 1024 * 1024),
    )
    try:
        with pytest.raises(resources_module.ResourceError, match="container"):
            resources_module.ensure_pack_capacity(str(sample), str(tmp_path / "out.aes"))
    finally:
        reset_policy(monkeypatch, policy_module, keys)


def test_share_files_counted_on_shared_filesystem(sample, tmp_path, monkeypatch, exact_policy):
    from sharevault import resources as resources_module

    container_bytes = sample.stat().st_size + resources_module.CONTAINER_OVERHEAD
    shares_bytes = 5 * share_file_size(MERSENNE_61)
    free = {"value": container_bytes + shares_bytes - 1}
    monkeypatch.setattr(
        resources_module.shutil,
        "disk_usage",
        lambda path: Usage(total=10**9, used=0, free=free["value"]),
    )

    # the container alone fits
    resources_module.ensure_pack_capacity(str(sample), str(tmp_path / "out.aes"))
    with pytest.raises(resources_module.ResourceError, match="container and share files"):
        resources_module.ensure_pack_capacity(
            str(sample), str(tmp_path / "out.aes"), str(tmp_path / "shares"),
            share_count=5, field=MERSENNE_61,
        )

    free["value"] += 1
    resources_module.ensure_pack_capacity(
        str(sample), str(tmp_path / "out.aes"), str(tmp_path / "shares"),
        share_count=5, field=MERSENNE_61,
    )


def test_shares_dir_on_full_filesystem(sample, tmp_path, monkeypatch, exact_policy):
    from sharevault import resources as resources_module

    shares_root = tmp_path / "usb"
    shares_root.mkdir()
    monkeypatch.setattr(
        resources_module,
        "_device_of",
        lambda directory: 2 if os.path.abspath(directory) == str(shares_root) else 1,
    )

    def usage(path):
        if os.path.abspath(path) == str(shares_root):
            return Usage(total=10**9, used=10**9, free=0)
        return Usage(total=10**12, used=0, free=10**12)

    monkeypatch.setattr(resources_module.shutil, "disk_usage", usage)
    with pytest.raises(resources_module.ResourceError) as exc:
        resources_module.ensure_pack_capacity(
            str(sample), str(tmp_path / "out.aes"), str(shares_root / "set-1"), share_count=3
        )
    assert str(shares_root) in str(exc.value)
    assert "share files" in str(exc.value)


def test_unpack_capacity_allows_when_space_high(tmp_path, monkeypatch):
    from sharevault import resources as resources_module

    policy_module, keys = reload_policy(
        monkeypatch,
        SHAREVAULT_MIN_FREE_MB=1,
        SHAREVAULT_HEADROOM_MB=1,
    )
    sealed = tmp_path / "sample.aes"
    sealed.write_bytes(b"x" * 2048)
    monkeypatch.setattr(
        resources_module.shutil,
        "disk_usage",
        lambda path: Usage(total=100, used=0, free=50 * 1024 * 1024),
    )
    try:
        resources_module.ensure_unpack_capacity(str(sealed), str(tmp_path / "output.bin"))
    finally:
        reset_policy(monkeypatch, policy_module, keys)
