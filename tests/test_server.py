import asyncio
from pathlib import Path
from typing import Any

import pytest
import requests
from fastapi.testclient import TestClient

from fhevm_session.client import signing
from fhevm_session.client.gateway import HttpGateway
from fhevm_session.client.wallet import LocalSigner
from fhevm_session.common.crypto import CryptoUtils
from fhevm_session.common.models import GatewayDecryptRequest
from fhevm_session.server.core import FhevmServer

CONTRACT = "0x" + "12" * 20


@pytest.fixture
def server(tmp_path: Path) -> FhevmServer:
    return FhevmServer(
        engine_key=CryptoUtils.generate_engine_key(),
        key_registry_path=tmp_path / "registry.json",
        signer=LocalSigner.create(),
        chain_id=31337,
    )


@pytest.fixture
def http(server: FhevmServer) -> TestClient:
    return TestClient(server.app)


def _encrypt(http: TestClient, value: object, kind: str) -> str:
    response = http.post("/api/fhe/encrypt", json={"value": value, "type": kind})
    assert response.status_code == 200  # noqa: PLR2004
    body = response.json()
    assert body["success"] is True
    assert body["encrypted"]["type"] == kind
    return body["encrypted"]["data"]


def test_health(http: TestClient) -> None:
    response = http.get("/health")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json()["status"] == "ok"


def test_status(http: TestClient) -> None:
    body = http.get("/api/fhe").json()
    assert body["status"] == "operational"
    assert body["chainId"] == 31337  # noqa: PLR2004
    assert body["network"] == "Localhost"
    assert body["endpoints"]["keys"] == "/api/keys"


def test_initialize_operation(http: TestClient, server: FhevmServer) -> None:
    assert http.post("/api/fhe", json={"operation": "status"}).json() == {
        "initialized": False,
        "ready": False,
    }
    response = http.post("/api/fhe", json={"operation": "initialize"})
    assert response.json()["success"] is True
    assert server.client.initialized
    assert http.post("/api/fhe", json={"operation": "reboot"}).status_code == 422  # noqa: PLR2004


def test_encrypt_then_public_decrypt(http: TestClient) -> None:
    handle = _encrypt(http, 42, "uint8")
    response = http.post("/api/fhe/decrypt", json={"handle": handle, "isPublic": True})
    assert response.json() == {"success": True, "decrypted": "42", "mode": "public"}


def test_encrypt_bool_decrypts_as_text(http: TestClient) -> None:
    handle = _encrypt(http, True, "bool")
    body = http.post("/api/fhe/decrypt", json={"handle": handle, "isPublic": True}).json()
    assert body["decrypted"] == "true"


def test_encrypt_out_of_range(http: TestClient) -> None:
    response = http.post("/api/fhe/encrypt", json={"value": 256, "type": "uint8"})
    assert response.status_code == 400  # noqa: PLR2004
    assert "uint8" in response.json()["detail"]


def test_encrypt_unknown_type(http: TestClient) -> None:
    response = http.post("/api/fhe/encrypt", json={"value": 1, "type": "uint256"})
    assert response.status_code == 422  # noqa: PLR2004


def test_user_decrypt_round_trip(http: TestClient) -> None:
    handle = _encrypt(http, 1234, "uint32")
    response = http.post(
        "/api/fhe/decrypt",
        json={"handle": handle, "contractAddress": CONTRACT, "isPublic": False},
    )
    assert response.json() == {"success": True, "decrypted": "1234", "mode": "user"}


def test_user_decrypt_requires_contract(http: TestClient) -> None:
    handle = _encrypt(http, 1, "uint8")
    response = http.post("/api/fhe/decrypt", json={"handle": handle})
    assert response.status_code == 400  # noqa: PLR2004

    response = http.post(
        "/api/fhe/decrypt", json={"handle": handle, "contractAddress": "0x1234"}
    )
    assert response.status_code == 400  # noqa: PLR2004


def test_decrypt_failure_is_reported(http: TestClient) -> None:
    response = http.post("/api/fhe/decrypt", json={"handle": "0xdead", "isPublic": True})
    body = response.json()
    assert response.status_code == 200  # noqa: PLR2004
    assert body["success"] is False
    assert body["error"]


def test_compute_acknowledges(http: TestClient) -> None:
    response = http.post(
        "/api/fhe/compute", json={"operation": "add", "operands": ["0x01", "0x02"]}
    )
    body = response.json()
    assert body["success"] is True
    assert body["operandCount"] == 2  # noqa: PLR2004
    assert body["operation"] == "add"

    short = http.post("/api/fhe/compute", json={"operation": "add", "operands": ["0x01"]})
    assert short.status_code == 422  # noqa: PLR2004


def test_get_describes_post_routes(http: TestClient) -> None:
    body = http.get("/api/fhe/compute").json()
    assert body["endpoint"] == "/api/fhe/compute"
    assert "xor" in body["supportedOperations"]
    assert http.get("/api/fhe/decrypt").json()["method"] == "POST"


def test_key_lifecycle(http: TestClient) -> None:
    registered = http.post(
        "/api/keys", json={"action": "register", "contractAddress": CONTRACT}
    )
    assert registered.status_code == 200  # noqa: PLR2004
    key_id = registered.json()["keyId"]

    fetched = http.get("/api/keys", params={"contractAddress": CONTRACT}).json()
    assert fetched["keyId"] == key_id
    assert fetched["publicKey"].startswith("0x")

    duplicate = http.post(
        "/api/keys", json={"action": "register", "contractAddress": CONTRACT}
    )
    assert duplicate.status_code == 409  # noqa: PLR2004

    revoked = http.post("/api/keys", json={"action": "revoke", "contractAddress": CONTRACT})
    assert revoked.json()["message"] == "Key revoked"
    missing = http.get("/api/keys", params={"contractAddress": CONTRACT})
    assert missing.status_code == 404  # noqa: PLR2004


def test_key_generate_and_errors(http: TestClient) -> None:
    generated = http.post("/api/keys", json={"action": "generate"}).json()
    assert generated["success"] is True
    assert "contractAddress" not in generated

    assert http.post("/api/keys", json={"action": "revoke"}).status_code == 400  # noqa: PLR2004
    assert http.get("/api/keys").status_code == 400  # noqa: PLR2004


def _gateway_request(handle: str, user: LocalSigner, chain_id: int = 31337) -> dict:
    domain = signing.build_domain(chain_id, CONTRACT)
    signature = asyncio.run(signing.sign(user, domain, handle, user.address))
    return {
        "handle": handle,
        "contractAddress": CONTRACT,
        "signature": signature.signature,
        "userAddress": user.address,
        "chainId": chain_id,
    }


def test_gateway_decrypt(http: TestClient) -> None:
    handle = _encrypt(http, 99, "uint16")
    user = LocalSigner.create()
    response = http.post("/gateway/decrypt", json=_gateway_request(handle, user))
    assert response.json() == {"value": 99, "success": True, "error": None}


def test_gateway_refuses_bad_signature(http: TestClient) -> None:
    handle = _encrypt(http, 99, "uint16")
    other = _encrypt(http, 100, "uint16")
    request = _gateway_request(handle, LocalSigner.create())
    request["handle"] = other
    body = http.post("/gateway/decrypt", json=request).json()
    assert body["success"] is False
    assert body["error"] == "Invalid decryption signature"

    unsigned = http.post("/gateway/decrypt", json={"handle": handle}).json()
    assert unsigned["success"] is False


def test_gateway_public_decrypt(http: TestClient) -> None:
    handle = _encrypt(http, 5, "uint8")
    response = http.post("/gateway/public-decrypt", json={"handle": handle})
    assert response.json() == {"value": 5, "success": True, "error": None}

    body = http.post("/gateway/public-decrypt", json={"handle": "0xzz"}).json()
    assert body["success"] is False
    assert http.get("/api/fhe").json()["endpoints"]["gatewayPublic"] == (
        "/gateway/public-decrypt"
    )


def test_http_gateway_public_decrypt_against_server(
    monkeypatch: Any, http: TestClient
) -> None:
    handle = _encrypt(http, True, "bool")

    def fake_post(url: str, json: dict, timeout: float) -> Any:
        return http.post(url, json=json)

    monkeypatch.setattr(requests, "post", fake_post)
    gateway = HttpGateway("http://testserver", retry_attempts=0, retry_delay_ms=0)
    response = asyncio.run(gateway.public_decrypt(GatewayDecryptRequest(handle=handle)))
    assert response.success
    assert response.value is True


def test_gateway_refuses_revoked_contract(http: TestClient) -> None:
    http.post("/api/keys", json={"action": "register", "contractAddress": CONTRACT})
    http.post("/api/keys", json={"action": "revoke", "contractAddress": CONTRACT})
    handle = _encrypt(http, 5, "uint8")
    body = http.post(
        "/gateway/decrypt", json=_gateway_request(handle, LocalSigner.create())
    ).json()
    assert body == {"value": None, "success": False, "error": "Contract key revoked"}


def test_server_generates_ephemeral_key_without_key_file(tmp_path: Path) -> None:
    server = FhevmServer(
        engine_key_path=tmp_path / "missing.key",
        key_registry_path=tmp_path / "registry.json",
        chain_id=31337,
    )
    http = TestClient(server.app)
    handle = _encrypt(http, 3, "uint8")
    body = http.post("/api/fhe/decrypt", json={"handle": handle, "isPublic": True}).json()
    assert body["decrypted"] == "3"
    assert server.signer_address is not None
