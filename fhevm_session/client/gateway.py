"""
Gateway transports for authorized decryption.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from fhevm_session.common.config import Config
from fhevm_session.common.decorators import retry_on
from fhevm_session.common.exceptions import DecryptionError, FhevmError
from fhevm_session.common.models import (
    GatewayDecryptRequest,
    GatewayDecryptResponse,
    KeyInfo,
    KeysApiResponse,
)

logger = logging.getLogger(__name__)

HTTP_SERVER_ERROR = 500


class GatewayUnavailable(Exception):
    """Transient gateway failure worth retrying."""


def _json_body(r: requests.Response) -> dict[str, Any]:
    try:
        body = r.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_text(r: requests.Response, body: dict[str, Any]) -> str:
    # FastAPI style {"detail": ...} error body
    return str(body.get("detail") or body.get("error") or f"HTTP {r.status_code}")


class UnavailableGateway:
    """Placeholder used when no gateway is configured.

    User decryption always comes back as an in-band failure.
    """

    error = "Gateway integration not configured"

    async def user_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        logger.debug("No gateway configured, refusing %s", request.handle)
        return GatewayDecryptResponse(success=False, error=self.error)

    async def public_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        return GatewayDecryptResponse(success=False, error=self.error)

    async def fetch_public_key(self, contract_address: str) -> KeyInfo:
        msg = f"Failed to retrieve public key for {contract_address}: {self.error}"
        raise FhevmError(msg)


class HttpGateway:
    """Gateway reached over HTTP with retry and exponential backoff."""

    def __init__(
        self,
        base_url: str,
        retry_attempts: int | None = None,
        retry_delay_ms: int | None = None,
        timeout: float | None = None,
    ):
        config = Config()
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = (
            retry_attempts if retry_attempts is not None else config.RETRY_ATTEMPTS
        )
        self.retry_delay_ms = (
            retry_delay_ms if retry_delay_ms is not None else config.RETRY_DELAY_MS
        )
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT

    def _post(self, path: str, payload: dict[str, Any]) -> requests.Response:
        try:
            r = requests.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise GatewayUnavailable(str(e)) from e
        if r.status_code >= HTTP_SERVER_ERROR:
            msg = f"gateway returned HTTP {r.status_code}"
            raise GatewayUnavailable(msg)
        return r

    def _get(self, path: str, params: dict[str, str]) -> requests.Response:
        try:
            r = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GatewayUnavailable(str(e)) from e
        if r.status_code >= HTTP_SERVER_ERROR:
            msg = f"gateway returned HTTP {r.status_code}"
            raise GatewayUnavailable(msg)
        return r

    @retry_on((GatewayUnavailable,), attempts="retry_attempts", delay_ms="retry_delay_ms")
    async def _send(self, path: str, payload: dict[str, Any]) -> GatewayDecryptResponse:
        r = await asyncio.to_thread(self._post, path, payload)
        body = _json_body(r)
        if "success" not in body:
            return GatewayDecryptResponse(success=False, error=_error_text(r, body))
        return GatewayDecryptResponse.model_validate(body)

    async def _decrypt(self, path: str, payload: dict[str, Any]) -> GatewayDecryptResponse:
        try:
            return await self._send(path, payload)
        except GatewayUnavailable as e:
            msg = f"Gateway request failed after {self.retry_attempts} retries: {e}"
            raise DecryptionError(msg) from e

    async def user_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        return await self._decrypt(
            "/gateway/decrypt", request.model_dump(by_alias=True, exclude_none=True)
        )

    async def public_decrypt(
        self, request: GatewayDecryptRequest
    ) -> GatewayDecryptResponse:
        """Decrypt a publicly decryptable handle; only the handle is sent."""
        return await self._decrypt("/gateway/public-decrypt", {"handle": request.handle})

    @retry_on((GatewayUnavailable,), attempts="retry_attempts", delay_ms="retry_delay_ms")
    async def _fetch_key(self, contract_address: str) -> KeysApiResponse:
        r = await asyncio.to_thread(
            self._get, "/api/keys", {"contractAddress": contract_address}
        )
        body = _json_body(r)
        if "success" not in body:
            return KeysApiResponse(success=False, error=_error_text(r, body))
        return KeysApiResponse.model_validate(body)

    async def fetch_public_key(self, contract_address: str) -> KeyInfo:
        try:
            data = await self._fetch_key(contract_address)
        except GatewayUnavailable as e:
            msg = f"Failed to retrieve public key: {e}"
            raise FhevmError(msg) from e
        if not data.success or not data.public_key or not data.key_id:
            msg = f"Failed to retrieve public key: {data.error or 'unknown error'}"
            raise FhevmError(msg)
        return KeyInfo(
            public_key=data.public_key,
            key_id=data.key_id,
            contract_address=data.contract_address or contract_address,
        )
