"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from fhevm_session.common.models import (
    GatewayDecryptRequest,
    GatewayDecryptResponse,
    KeyInfo,
)


class CryptoEngine(Protocol):
    """Scalar encryption primitives provided by an external FHE library."""

    def encrypt_uint(self, bits: int, value: int) -> bytes: ...

    def encrypt_address(self, address: str) -> bytes: ...

    def encrypt_bool(self, value: bool) -> bytes: ...  # noqa: FBT001

    def decrypt(self, handle: str) -> Any: ...


class EngineLoader(Protocol):
    """Obtains a CryptoEngine, possibly after I/O."""

    async def load(self) -> CryptoEngine: ...


@runtime_checkable
class Signer(Protocol):
    """User-controlled signing key."""

    async def get_address(self) -> str: ...

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        value: dict[str, Any],
    ) -> str: ...


@runtime_checkable
class ChainReader(Protocol):
    """Read access to the current network context."""

    async def get_chain_id(self) -> int: ...


@runtime_checkable
class GatewayTransport(Protocol):
    """Remote authorization/decryption service."""

    async def user_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse: ...

    async def public_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse: ...

    async def fetch_public_key(self, contract_address: str) -> KeyInfo: ...
