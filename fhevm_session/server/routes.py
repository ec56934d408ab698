"""
Routes for the fhEVM API server.
"""

from functools import partial
from typing import Any

from fastapi import FastAPI, HTTPException, Query

from fhevm_session.common.exceptions import FhevmError, ValidationError
from fhevm_session.common.models import (
    ComputeApiRequest,
    ComputeApiResponse,
    DecryptApiRequest,
    DecryptApiResponse,
    EncryptApiRequest,
    EncryptApiResponse,
    GatewayDecryptRequest,
    GatewayDecryptResponse,
    KeysApiRequest,
    KeysApiResponse,
    StatusApiRequest,
)

from .services import FhevmService


class FhevmRoutes:
    """Handles FastAPI routes for the API server."""

    def __init__(self, service: FhevmService):
        self.service = service

    def setup_routes(self, app: FastAPI) -> None:
        """Setup API routes on the FastAPI app."""

        app.get("/health")(self.health)
        app.get("/api/fhe")(self.status)
        app.post("/api/fhe")(self.control)
        app.post("/api/fhe/encrypt", response_model_exclude_none=True)(self.encrypt)
        app.post("/api/fhe/decrypt", response_model_exclude_none=True)(self.decrypt)
        app.post("/api/fhe/compute")(self.compute)
        for path in ("/api/fhe/encrypt", "/api/fhe/decrypt", "/api/fhe/compute"):
            app.get(path)(partial(self.describe, path))
        app.get("/api/keys", response_model_exclude_none=True)(self.get_key)
        app.post("/api/keys", response_model_exclude_none=True)(self.manage_keys)
        app.post("/gateway/decrypt")(self.gateway_decrypt)
        app.post("/gateway/public-decrypt")(self.gateway_public_decrypt)

    @staticmethod
    def _http_error(e: FhevmError) -> HTTPException:
        if isinstance(e, ValidationError):
            return HTTPException(e.status_code, str(e))
        return HTTPException(500, str(e))

    async def health(self) -> dict[str, Any]:
        """Handle /health endpoint."""
        return self.service.health()

    async def status(self) -> dict[str, Any]:
        """Handle GET /api/fhe endpoint."""
        return await self.service.status()

    async def control(self, req: StatusApiRequest) -> dict[str, Any]:
        """Handle POST /api/fhe endpoint."""
        try:
            return await self.service.control(req)
        except FhevmError as e:
            raise self._http_error(e) from e

    async def encrypt(self, req: EncryptApiRequest) -> EncryptApiResponse:
        """Handle /api/fhe/encrypt endpoint."""
        try:
            return await self.service.encrypt(req)
        except FhevmError as e:
            raise self._http_error(e) from e

    async def decrypt(self, req: DecryptApiRequest) -> DecryptApiResponse:
        """Handle /api/fhe/decrypt endpoint."""
        try:
            return await self.service.decrypt(req)
        except FhevmError as e:
            raise self._http_error(e) from e

    async def compute(self, req: ComputeApiRequest) -> ComputeApiResponse:
        """Handle /api/fhe/compute endpoint."""
        try:
            return await self.service.compute(req)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def describe(self, endpoint: str) -> dict[str, Any]:
        return self.service.describe(endpoint)

    async def get_key(
        self, contract_address: str | None = Query(default=None, alias="contractAddress")
    ) -> KeysApiResponse:
        """Handle GET /api/keys endpoint."""
        try:
            return await self.service.get_key(contract_address)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def manage_keys(self, req: KeysApiRequest) -> KeysApiResponse:
        """Handle POST /api/keys endpoint."""
        try:
            return await self.service.manage_keys(req)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def gateway_decrypt(
        self, req: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        """Handle /gateway/decrypt endpoint."""
        return await self.service.gateway_decrypt(req)

    async def gateway_public_decrypt(
        self, req: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        """Handle /gateway/public-decrypt endpoint."""
        return await self.service.gateway_public_decrypt(req)
