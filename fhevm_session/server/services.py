"""Business logic services for the fhEVM API server.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from fhevm_session.common.codec import stringify, validate_address
from fhevm_session.common.exceptions import (
    EncryptionError,
    FhevmError,
    ValidationError,
)
from fhevm_session.common.models import (
    ComputeApiResponse,
    DecryptApiResponse,
    EncryptApiResponse,
    EncryptedPayload,
    FheOperation,
    GatewayDecryptResponse,
    KeysApiResponse,
)

if TYPE_CHECKING:
    import logging

    from fhevm_session.client.client import FhevmClient
    from fhevm_session.common.config import Config
    from fhevm_session.common.models import (
        ComputeApiRequest,
        DecryptApiRequest,
        EncryptApiRequest,
        GatewayDecryptRequest,
        KeyRecord,
        KeysApiRequest,
        StatusApiRequest,
    )

    from .gateway import LocalGateway
    from .keys import KeyRegistry

HTTP_SERVER_ERROR = 500


class FhevmService:
    """Handles business logic for the API routes."""

    def __init__(
        self,
        config: Config,
        client: FhevmClient,
        gateway: LocalGateway,
        key_registry: KeyRegistry,
        logger: logging.Logger,
    ):
        self.config = config
        self.client = client
        self.gateway = gateway
        self.key_registry = key_registry
        self.logger = logger

    def health(self) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "timestamp": int(time.time())}

    async def status(self) -> dict[str, Any]:
        chain_id = await self.client.chain.get_chain_id()
        network = self.config.network_for_chain(chain_id)
        return {
            "status": "operational",
            "message": "FHE operations API is running",
            "initialized": self.client.initialized,
            "chainId": chain_id,
            "network": network["name"] if network else None,
            "endpoints": {
                "encrypt": "/api/fhe/encrypt",
                "decrypt": "/api/fhe/decrypt",
                "compute": "/api/fhe/compute",
                "keys": "/api/keys",
                "gateway": "/gateway/decrypt",
                "gatewayPublic": "/gateway/public-decrypt",
            },
        }

    async def control(self, request: StatusApiRequest) -> dict[str, Any]:
        if request.operation == "initialize":
            await self.client.init()
            return {"success": True, "message": "FHE client initialized successfully"}
        return {
            "initialized": self.client.initialized,
            "ready": self.client.initialized,
        }

    async def encrypt(self, request: EncryptApiRequest) -> EncryptApiResponse:
        try:
            record = await self.client.encrypt(request.value, request.type)
        except EncryptionError as e:
            status = (
                e.__cause__.status_code
                if isinstance(e.__cause__, ValidationError)
                else HTTP_SERVER_ERROR
            )
            raise ValidationError(str(e), status) from e
        return EncryptApiResponse(
            success=True,
            encrypted=EncryptedPayload(data=record.data, type=record.data_kind),
        )

    async def decrypt(self, request: DecryptApiRequest) -> DecryptApiResponse:
        """Decrypt through the public path or the signed user path.

        Decryption failures come back as ``success: false``; a missing or
        malformed contract address for user decryption is a 400.
        """
        if request.is_public:
            result = await self.client.public_decrypt(request.handle)
        else:
            if not request.contract_address:
                msg = "Contract address is required for user decryption"
                raise ValidationError(msg)
            validate_address(request.contract_address)
            result = await self.client.user_decrypt(
                request.contract_address, request.handle
            )

        if not result.success:
            self.logger.info("Decryption of %s failed: %s", request.handle, result.error)
            return DecryptApiResponse(success=False, mode=result.mode, error=result.error)
        return DecryptApiResponse(
            success=True, decrypted=stringify(result.value), mode=result.mode
        )

    async def compute(self, request: ComputeApiRequest) -> ComputeApiResponse:
        """Acknowledge a homomorphic operation; evaluation happens on-chain."""
        if request.contract_address:
            validate_address(request.contract_address)
        return ComputeApiResponse(
            success=True,
            message="Computation submitted to smart contract",
            operation=request.operation,
            operand_count=len(request.operands),
            note="Actual computation happens on-chain with encrypted values",
        )

    @staticmethod
    def _key_response(record: KeyRecord, message: str) -> KeysApiResponse:
        return KeysApiResponse(
            success=True,
            public_key=record.public_key,
            key_id=record.key_id,
            contract_address=record.contract_address,
            message=message,
        )

    async def get_key(self, contract_address: str | None) -> KeysApiResponse:
        if not contract_address:
            msg = "contractAddress query parameter is required"
            raise ValidationError(msg)
        record = self.key_registry.get(contract_address)
        return self._key_response(record, "Active key")

    async def manage_keys(self, request: KeysApiRequest) -> KeysApiResponse:
        if request.action == "generate":
            record = self.key_registry.generate()
            return self._key_response(record, "Key generated")

        if not request.contract_address:
            msg = f"Contract address is required to {request.action} a key"
            raise ValidationError(msg)
        if request.action == "register":
            record = self.key_registry.register(request.contract_address)
            return self._key_response(record, "Key registered")
        record = self.key_registry.revoke(request.contract_address)
        return self._key_response(record, "Key revoked")

    async def gateway_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        try:
            return await self.gateway.user_decrypt(request)
        except FhevmError as e:
            self.logger.warning("Gateway decryption error: %s", e)
            return GatewayDecryptResponse(success=False, error=str(e))

    async def gateway_public_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        try:
            return await self.gateway.public_decrypt(request)
        except FhevmError as e:
            self.logger.warning("Gateway public decryption error: %s", e)
            return GatewayDecryptResponse(success=False, error=str(e))

    @staticmethod
    def describe(endpoint: str) -> dict[str, Any]:
        """Usage description returned by GET on the POST routes."""
        descriptions: dict[str, dict[str, Any]] = {
            "/api/fhe/encrypt": {
                "description": "Encrypts a value as the given FHE data type",
                "parameters": {
                    "value": "Number, address or boolean to encrypt",
                    "type": "uint8 | uint16 | uint32 | uint64 | address | bool",
                },
            },
            "/api/fhe/decrypt": {
                "description": "Decrypts FHE encrypted data with proper authorization",
                "parameters": {
                    "handle": "The encryption handle to decrypt",
                    "contractAddress": "Contract address (required for user decryption)",
                    "isPublic": "Whether this is public decryption (no signature required)",
                },
                "note": "User decryption requires authorization via EIP-712 signature",
            },
            "/api/fhe/compute": {
                "description": "Submit homomorphic computation operations",
                "supportedOperations": [op.value for op in FheOperation],
                "parameters": {
                    "operation": "The computation operation to perform",
                    "operands": "Array of at least two encrypted operand handles",
                    "contractAddress": "Smart contract address for computation",
                },
                "note": "Computations are performed on encrypted data without revealing values",
            },
        }
        return {"endpoint": endpoint, "method": "POST", **descriptions[endpoint]}
