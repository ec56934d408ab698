import json
from pathlib import Path

import pytest

from fhevm_session.common.exceptions import FormatError, ValidationError
from fhevm_session.server.keygen import KeyGenerator
from fhevm_session.server.keys import KeyRegistry
from fhevm_session.server.persistence import DataPersistence

CONTRACT = "0x" + "12" * 20


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / "keys" / "registry.json"


def test_register_and_get(registry_path: Path) -> None:
    registry = KeyRegistry(registry_path)
    record = registry.register(CONTRACT)
    assert record.public_key.startswith("0x")
    assert len(record.public_key) == 66  # noqa: PLR2004
    assert record.contract_address == CONTRACT
    assert registry.get(CONTRACT.upper().replace("0X", "0x")) is record


def test_register_twice_conflicts(registry_path: Path) -> None:
    registry = KeyRegistry(registry_path)
    registry.register(CONTRACT)
    with pytest.raises(ValidationError) as excinfo:
        registry.register(CONTRACT)
    assert excinfo.value.status_code == 409  # noqa: PLR2004


def test_revoke_then_reregister(registry_path: Path) -> None:
    registry = KeyRegistry(registry_path)
    first = registry.register(CONTRACT)
    revoked = registry.revoke(CONTRACT)
    assert revoked.revoked
    assert registry.is_revoked(CONTRACT)

    with pytest.raises(ValidationError) as excinfo:
        registry.get(CONTRACT)
    assert excinfo.value.status_code == 404  # noqa: PLR2004
    with pytest.raises(ValidationError):
        registry.revoke(CONTRACT)

    second = registry.register(CONTRACT)
    assert second.key_id != first.key_id
    assert not registry.is_revoked(CONTRACT)


def test_registry_rejects_bad_address(registry_path: Path) -> None:
    with pytest.raises(FormatError):
        KeyRegistry(registry_path).register("0x1234")


def test_generate_is_unbound(registry_path: Path) -> None:
    registry = KeyRegistry(registry_path)
    record = registry.generate()
    assert record.contract_address is None
    assert registry.records == {}
    assert not registry_path.exists()


def test_registry_survives_restart(registry_path: Path) -> None:
    record = KeyRegistry(registry_path).register(CONTRACT)
    reloaded = KeyRegistry(registry_path)
    assert reloaded.get(CONTRACT).key_id == record.key_id


def test_persistence_tolerates_bad_files(tmp_path: Path) -> None:
    path = tmp_path / "registry.json"
    assert DataPersistence.load_key_records(path) == {}

    path.write_text("{not json")
    assert DataPersistence.load_key_records(path) == {}

    path.write_text("[]")
    assert DataPersistence.load_key_records(path) == {}

    path.write_text(
        json.dumps(
            {
                "good": {"public_key": "0xaa", "key_id": "k", "created_at": 1},
                "bad": {"public_key": "0xaa"},
            }
        )
    )
    assert list(DataPersistence.load_key_records(path)) == ["good"]


def test_key_generator_writes_engine_key(tmp_path: Path) -> None:
    keys_dir = tmp_path / "nested" / "keys"
    path = KeyGenerator(keys_dir).generate_keys()

    assert path == keys_dir / "engine.key"
    assert len(bytes.fromhex(path.read_text())) == 32  # noqa: PLR2004


def test_key_generator_refuses_overwrite(tmp_path: Path) -> None:
    generator = KeyGenerator(tmp_path)
    first = generator.generate_keys().read_text()
    with pytest.raises(FileExistsError):
        generator.generate_keys()
    assert generator.generate_keys(overwrite=True).read_text() != first
