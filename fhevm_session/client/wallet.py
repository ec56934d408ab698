"""
Signer and chain capabilities backed by eth-account and JSON-RPC.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import requests
from eth_account import Account

from fhevm_session.client.signing import encode_message
from fhevm_session.common.config import Config

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)


class LocalSigner:
    """Signer holding a private key in process."""

    def __init__(self, account: LocalAccount):
        self.account = account

    @classmethod
    def from_key(cls, private_key: str | bytes) -> LocalSigner:
        return cls(Account.from_key(private_key))

    @classmethod
    def create(cls) -> LocalSigner:
        """Signer with a freshly generated random key."""
        return cls(Account.create())

    @property
    def address(self) -> str:
        return self.account.address

    async def get_address(self) -> str:
        return self.account.address

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        value: dict[str, Any],
    ) -> str:
        signable = encode_message(domain, types, value)
        signed = self.account.sign_message(signable)
        return "0x" + bytes(signed.signature).hex()


class StaticChain:
    """Chain reader for a fixed, known chain id."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id

    async def get_chain_id(self) -> int:
        return self.chain_id


class RpcChain:
    """Chain reader asking a JSON-RPC node for ``eth_chainId``."""

    def __init__(self, rpc_url: str, timeout: float | None = None):
        self.rpc_url = rpc_url
        self.timeout = timeout if timeout is not None else Config().REQUEST_TIMEOUT
        self._chain_id: int | None = None

    def _fetch_chain_id(self) -> int:
        r = requests.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": "eth_chainId", "params": []},
            timeout=self.timeout,
        )
        r.raise_for_status()
        body = r.json()
        if "error" in body:
            msg = f"eth_chainId failed: {body['error']}"
            raise ValueError(msg)
        return int(body["result"], 16)

    async def get_chain_id(self) -> int:
        # chain id of an endpoint does not change, ask once
        if self._chain_id is None:
            self._chain_id = await asyncio.to_thread(self._fetch_chain_id)
            logger.debug("Chain id from %s: %s", self.rpc_url, self._chain_id)
        return self._chain_id
