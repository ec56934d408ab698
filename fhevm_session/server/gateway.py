"""
Reference gateway: verifies decryption authorizations and decrypts in process.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

from fhevm_session.client import signing
from fhevm_session.common.codec import validate_address, validate_handle
from fhevm_session.common.exceptions import FhevmError
from fhevm_session.common.models import (
    GatewayDecryptRequest,
    GatewayDecryptResponse,
    KeyInfo,
)

if TYPE_CHECKING:
    from fhevm_session.common.interfaces import CryptoEngine, EngineLoader

    from .keys import KeyRegistry

logger = logging.getLogger(__name__)


class LocalGateway:
    """Gateway backed by a local engine and key registry.

    Serves the in-process API client and the ``/gateway/decrypt`` and
    ``/gateway/public-decrypt`` routes.
    """

    def __init__(
        self,
        engine_loader: EngineLoader,
        chain_id: int,
        key_registry: KeyRegistry | None = None,
    ):
        self.engine_loader = engine_loader
        self.chain_id = chain_id
        self.key_registry = key_registry
        self._engine: CryptoEngine | None = None

    async def _get_engine(self) -> CryptoEngine:
        if self._engine is None:
            self._engine = await self.engine_loader.load()
        return self._engine

    async def _decrypt(self, handle: str) -> GatewayDecryptResponse:
        try:
            validate_handle(handle)
            engine = await self._get_engine()
            value = engine.decrypt(handle)
            if inspect.isawaitable(value):
                value = await value
        except FhevmError as e:
            return GatewayDecryptResponse(success=False, error=str(e))
        return GatewayDecryptResponse(value=value, success=True)

    def _authorize(self, request: GatewayDecryptRequest) -> str | None:
        """Reason to refuse the request, or None when it is authorized."""
        if not request.signature or not request.user_address:
            return "Signature and user address are required"
        if not request.contract_address:
            return "Contract address is required"
        try:
            validate_address(request.contract_address)
            validate_address(request.user_address)
        except FhevmError as e:
            return str(e)
        if request.chain_id is not None and request.chain_id != self.chain_id:
            return f"Chain mismatch: gateway serves chain {self.chain_id}"
        if self.key_registry is not None and self.key_registry.is_revoked(
            request.contract_address
        ):
            return "Contract key revoked"

        domain = signing.build_domain(self.chain_id, request.contract_address)
        if not signing.verify(
            request.signature,
            domain,
            request.handle,
            request.user_address,
            request.user_address,
        ):
            return "Invalid decryption signature"
        return None

    async def user_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        refusal = self._authorize(request)
        if refusal is not None:
            logger.info("Refused decryption of %s: %s", request.handle, refusal)
            return GatewayDecryptResponse(success=False, error=refusal)
        return await self._decrypt(request.handle)

    async def public_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        return await self._decrypt(request.handle)

    async def fetch_public_key(self, contract_address: str) -> KeyInfo:
        if self.key_registry is None:
            msg = "No key registry configured"
            raise FhevmError(msg)
        return self.key_registry.get(contract_address).to_key_info()
