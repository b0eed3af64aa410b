import io
import json
from collections import namedtuple

import pytest

from sharevault import generate, reconstruct
from sharevault import resources as resources_module
from sharevault.cipher import OperationCancelled, decrypt_stream, encrypt_stream
from sharevault.encoding import key_from_secret, secret_from_key
from sharevault.entropy import EntropySource
from sharevault.errors import ContainerError, InsufficientSharesError, InvalidThresholdError
from sharevault.vault import protect_file, recover_file

Usage = namedtuple("Usage", "total used free")


@pytest.fixture(autouse=True)
def plenty_of_space(monkeypatch):
    monkeypatch.setattr(
        resources_module.shutil,
        "disk_usage",
        lambda path: Usage(total=10**12, used=0, free=10**12),
    )


def test_encrypt_split_reconstruct_decrypt_roundtrip():
    plaintext = b"The quick brown fox jumps over the lazy dog" * 100
    key = EntropySource().random_bytes(32)

    sealed = io.BytesIO()
    encrypt_stream(io.BytesIO(plaintext), sealed, key)

    shares = generate(secret_from_key(key), 5, 3)
    recovered = key_from_secret(reconstruct(shares.subset([5, 2, 3]), 3), 32)
    assert recovered == key

    sealed.seek(0)
    out = io.BytesIO()
    decrypt_stream(sealed, out, recovered)
    assert out.getvalue() == plaintext


def test_protect_and_recover_file(tmp_path):
    source = tmp_path / "report.pdf"
    source.write_bytes(b"%PDF-1.7 pretend" * 512)
    container = tmp_path / "report.pdf.aes"
    shares_dir = tmp_path / "shares"

    report = protect_file(str(source), str(container), str(shares_dir), shares=5, threshold=3)
    assert report.container == container
    assert len(report.share_paths) == 5
    assert all(p.parent == shares_dir for p in report.share_paths)

    restored = tmp_path / "restored.pdf"
    picked = [report.share_paths[0], report.share_paths[2], report.share_paths[4]]
    size = recover_file(str(container), str(restored), picked)
    assert size == source.stat().st_size
    assert restored.read_bytes() == source.read_bytes()

    events = sorted((tmp_path / "audit").glob("audit_*.json"))
    names = {json.loads(p.read_text())["payload"]["event"] for p in events}
    assert names == {"vault.protected", "vault.recovered"}
    for path in events:
        assert "secret" not in path.read_text()


def test_recover_with_too_few_shares(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_text("meeting at noon")
    container = tmp_path / "notes.txt.aes"
    report = protect_file(str(source), str(container), str(tmp_path / "s"), shares=4, threshold=3)

    restored = tmp_path / "notes.out"
    with pytest.raises(InsufficientSharesError):
        recover_file(str(container), str(restored), report.share_paths[:2])
    assert not restored.exists()


def test_invalid_threshold_writes_nothing(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_text("meeting at noon")
    container = tmp_path / "notes.txt.aes"
    with pytest.raises(InvalidThresholdError):
        protect_file(str(source), str(container), str(tmp_path / "s"), shares=2, threshold=3)
    assert not container.exists()
    assert not (tmp_path / "s").exists()


def test_audit_can_be_disabled(tmp_path, monkeypatch):
    from sharevault import policy as policy_module

    monkeypatch.setattr(policy_module, "policy", policy_module.SharePolicy(audit_enabled=False))
    source = tmp_path / "a.bin"
    source.write_bytes(b"abc")
    protect_file(str(source), str(tmp_path / "a.bin.aes"), str(tmp_path / "s"), shares=3, threshold=2)
    assert not (tmp_path / "audit").exists()


@pytest.mark.parametrize("width", [16, 24])
def test_recover_uses_key_width_from_container(tmp_path, width):
    source = tmp_path / "notes.txt"
    source.write_text("meeting at noon")
    container = tmp_path / "notes.txt.aes"
    report = protect_file(
        str(source), str(container), str(tmp_path / "s"), shares=3, threshold=2, key_bytes=width
    )

    restored = tmp_path / "notes.out"
    recover_file(str(container), str(restored), report.share_paths[1:])
    assert restored.read_text() == "meeting at noon"


def test_shares_from_another_container_are_rejected(tmp_path):
    reports = []
    for name in ("a", "b"):
        source = tmp_path / f"{name}.txt"
        source.write_text(name * 10)
        reports.append(
            protect_file(
                str(source), str(tmp_path / f"{name}.aes"), str(tmp_path / name), shares=3, threshold=2
            )
        )

    mixed = [reports[0].share_paths[0], reports[1].share_paths[1]]
    with pytest.raises(ContainerError):
        recover_file(str(tmp_path / "a.aes"), str(tmp_path / "mixed.txt"), mixed)
    assert not (tmp_path / "mixed.txt").exists()


def test_unwritable_shares_dir_leaves_no_container(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_text("meeting at noon")
    container = tmp_path / "notes.txt.aes"
    blocker = tmp_path / "shares"
    blocker.write_text("a file, not a directory")

    with pytest.raises(FileExistsError):
        protect_file(str(source), str(container), str(blocker), shares=3, threshold=2)
    assert not container.exists()
    assert blocker.read_text() == "a file, not a directory"


def test_failed_encryption_removes_share_files(tmp_path):
    class Cancelled:
        def is_set(self):
            return True

    source = tmp_path / "notes.txt"
    source.write_text("meeting at noon")
    container = tmp_path / "notes.txt.aes"
    shares_dir = tmp_path / "s"

    with pytest.raises(OperationCancelled):
        protect_file(
            str(source), str(container), str(shares_dir), shares=3, threshold=2, cancel_event=Cancelled()
        )
    assert not container.exists()
    assert list(shares_dir.glob("*.svs")) == []
