import io
import os

import pytest

from sharevault.cipher import (
    OperationCancelled,
    container_key_size,
    decrypt_file,
    decrypt_stream,
    encrypt_file,
    encrypt_stream,
    read_header,
)
from sharevault.errors import ContainerError


class DummyEvent:
    def __init__(self):
        self._flag = False

    def is_set(self):
        return self._flag

    def set(self):
        self._flag = True


KEY = bytes(range(32))


def test_encrypt_decrypt_roundtrip(tmp_path):
    source = tmp_path / "plain.bin"
    source.write_bytes(os.urandom(700 * 1024))
    encrypted = tmp_path / "plain.bin.aes"
    decrypted = tmp_path / "plain.out"

    progress_updates = []
    encrypt_file(str(source), str(encrypted), KEY, progress_cb=progress_updates.append)
    assert encrypted.exists()
    assert progress_updates[-1] == 1.0

    decrypt_updates = []
    size = decrypt_file(str(encrypted), str(decrypted), KEY, progress_cb=decrypt_updates.append)
    assert size == 700 * 1024
    assert decrypted.read_bytes() == source.read_bytes()
    assert decrypt_updates[-1] == 1.0
    assert all(0.0 <= value <= 1.0 for value in decrypt_updates)


def test_stream_roundtrip_empty_plaintext():
    sealed = io.BytesIO()
    encrypt_stream(io.BytesIO(b""), sealed, KEY)
    sealed.seek(0)
    out = io.BytesIO()
    assert decrypt_stream(sealed, out, KEY) == 0
    assert out.getvalue() == b""


def test_wrong_key_leaves_no_output(tmp_path):
    source = tmp_path / "plain.txt"
    source.write_bytes(b"attack at dawn")
    encrypted = tmp_path / "plain.txt.aes"
    encrypt_file(str(source), str(encrypted), KEY)

    target = tmp_path / "out.txt"
    with pytest.raises(ContainerError):
        decrypt_file(str(encrypted), str(target), bytes(32))
    assert not target.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["plain.txt", "plain.txt.aes"]


def test_tampered_and_truncated_containers():
    sealed = io.BytesIO()
    encrypt_stream(io.BytesIO(b"payload" * 10), sealed, KEY)
    data = bytearray(sealed.getvalue())

    flipped = bytearray(data)
    flipped[-20] ^= 0x01
    with pytest.raises(ContainerError):
        decrypt_stream(io.BytesIO(bytes(flipped)), io.BytesIO(), KEY)

    with pytest.raises(ContainerError):
        decrypt_stream(io.BytesIO(bytes(data[:10])), io.BytesIO(), KEY)

    with pytest.raises(ContainerError):
        decrypt_stream(io.BytesIO(bytes(data[:20])), io.BytesIO(), KEY)

    wrong_magic = bytearray(data)
    wrong_magic[12:16] = b"NOPE"
    with pytest.raises(ContainerError):
        decrypt_stream(io.BytesIO(bytes(wrong_magic)), io.BytesIO(), KEY)


@pytest.mark.parametrize("width", [16, 24, 32])
def test_header_records_key_width(tmp_path, width):
    source = tmp_path / "plain.bin"
    source.write_bytes(b"abc" * 100)
    encrypted = tmp_path / "plain.bin.aes"
    encrypt_file(str(source), str(encrypted), bytes(width))
    assert container_key_size(str(encrypted)) == width

    with pytest.raises(ContainerError, match="sealed with a"):
        decrypt_file(str(encrypted), str(tmp_path / "out.bin"), bytes(32 if width != 32 else 16))


def test_read_header_rejects_unknown_key_width():
    sealed = io.BytesIO()
    encrypt_stream(io.BytesIO(b"payload"), sealed, KEY)
    data = bytearray(sealed.getvalue())
    data[17] = 20
    with pytest.raises(ContainerError, match="unsupported 20-byte key"):
        read_header(io.BytesIO(bytes(data)))


def test_key_length_checked():
    with pytest.raises(ValueError):
        encrypt_stream(io.BytesIO(b"x"), io.BytesIO(), b"short")
    with pytest.raises(TypeError):
        encrypt_stream(io.BytesIO(b"x"), io.BytesIO(), "not-bytes")


def test_encrypt_cancel(tmp_path):
    source = tmp_path / "plain.bin"
    source.write_bytes(os.urandom(1024 * 1024))
    encrypted = tmp_path / "sealed.aes"
    cancel = DummyEvent()

    def cancelling_progress(value):
        if value >= 0.0:
            cancel.set()

    with pytest.raises(OperationCancelled) as exc:
        encrypt_file(
            str(source),
            str(encrypted),
            KEY,
            progress_cb=cancelling_progress,
            cancel_event=cancel,
        )
    assert "cancelled" in str(exc.value)
    assert not encrypted.exists()
