import sys
import types
from pathlib import Path
from typing import Any

import pytest

from fhevm_session.common.crypto import CryptoUtils
from fhevm_session.common.engine import (
    ImportEngineLoader,
    LocalEngine,
    LocalEngineLoader,
)
from fhevm_session.common.exceptions import DecryptionError, InitializationError

ADDRESS = "0x" + "ab" * 20


@pytest.fixture
def engine() -> LocalEngine:
    return LocalEngine(CryptoUtils.generate_engine_key())


def _handle(raw: bytes) -> str:
    return CryptoUtils.bytes_to_handle(raw)


def test_engine_decrypts_each_kind(engine: LocalEngine) -> None:
    assert engine.decrypt(_handle(engine.encrypt_uint(8, 200))) == 200  # noqa: PLR2004
    assert engine.decrypt(_handle(engine.encrypt_uint(64, 2**64 - 1))) == 2**64 - 1
    assert engine.decrypt(_handle(engine.encrypt_address(ADDRESS))) == ADDRESS
    assert engine.decrypt(_handle(engine.encrypt_bool(True))) is True
    assert engine.decrypt(_handle(engine.encrypt_bool(False))) is False


def test_engine_encryption_is_randomized(engine: LocalEngine) -> None:
    assert engine.encrypt_uint(32, 7) != engine.encrypt_uint(32, 7)


def test_engine_rejects_unsupported_width(engine: LocalEngine) -> None:
    with pytest.raises(ValueError, match="bit width"):
        engine.encrypt_uint(128, 1)


def test_engine_rejects_tampered_handle(engine: LocalEngine) -> None:
    raw = bytearray(engine.encrypt_uint(32, 7))
    raw[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        engine.decrypt(_handle(bytes(raw)))


def test_engine_rejects_foreign_handle(engine: LocalEngine) -> None:
    other = LocalEngine(CryptoUtils.generate_engine_key())
    with pytest.raises(DecryptionError):
        engine.decrypt(_handle(other.encrypt_uint(32, 7)))


def test_engine_rejects_malformed_handles(engine: LocalEngine) -> None:
    with pytest.raises(DecryptionError):
        engine.decrypt("0xzz")
    with pytest.raises(DecryptionError):
        engine.decrypt("0x0102")


@pytest.mark.asyncio
async def test_local_loader_generates_key_once() -> None:
    loader = LocalEngineLoader()
    first = await loader.load()
    second = await loader.load()
    handle = _handle(first.encrypt_uint(16, 513))
    assert second.decrypt(handle) == 513  # noqa: PLR2004


@pytest.mark.asyncio
async def test_local_loader_reads_key_file(tmp_path: Path) -> None:
    key = CryptoUtils.generate_engine_key()
    key_path = tmp_path / "engine.key"
    key_path.write_text(key.hex())

    engine = await LocalEngineLoader(key_path=key_path).load()
    handle = _handle(LocalEngine(key).encrypt_bool(True))
    assert engine.decrypt(handle) is True


@pytest.mark.asyncio
async def test_local_loader_missing_key_file(tmp_path: Path) -> None:
    loader = LocalEngineLoader(key_path=tmp_path / "missing.key")
    with pytest.raises(InitializationError, match="keygen"):
        await loader.load()


@pytest.mark.asyncio
async def test_local_loader_bad_key_length() -> None:
    with pytest.raises(InitializationError):
        await LocalEngineLoader(key=b"short").load()


@pytest.mark.asyncio
async def test_import_loader_awaits_async_factory(monkeypatch: Any) -> None:
    module = types.ModuleType("fake_fhe_engine")

    async def create(key: bytes) -> LocalEngine:
        return LocalEngine(key)

    module.create = create  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "fake_fhe_engine", module)

    key = CryptoUtils.generate_engine_key()
    engine = await ImportEngineLoader("fake_fhe_engine:create", key=key).load()
    assert engine.decrypt(_handle(LocalEngine(key).encrypt_uint(8, 9))) == 9  # noqa: PLR2004


@pytest.mark.asyncio
async def test_import_loader_failures() -> None:
    with pytest.raises(InitializationError):
        await ImportEngineLoader("no_colon_here").load()
    with pytest.raises(InitializationError):
        await ImportEngineLoader("module_that_does_not_exist_xyz:create").load()
