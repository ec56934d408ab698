"""
fhEVM API server using FastAPI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from fhevm_session.client.client import FhevmClient
from fhevm_session.client.wallet import LocalSigner, RpcChain, StaticChain
from fhevm_session.common.config import Config
from fhevm_session.common.engine import LocalEngineLoader
from fhevm_session.common.logging_utils import setup_logger

from .gateway import LocalGateway
from .keys import KeyRegistry
from .routes import FhevmRoutes
from .services import FhevmService

if TYPE_CHECKING:
    from pathlib import Path

    from fhevm_session.common.interfaces import ChainReader, Signer


class FhevmServer:
    """API server wiring the session client, the reference gateway and key registry."""

    def __init__(
        self,
        config: Config | None = None,
        log_level: int | None = None,
        engine_key: bytes | None = None,
        engine_key_path: Path | None = None,
        key_registry_path: Path | None = None,
        signer: Signer | None = None,
        chain_id: int | None = None,
        server_host: str | None = None,
        server_port: int | None = None,
    ):
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, log_level or self.config.LOG_LEVEL)

        self.server_host = server_host or self.config.SERVER_HOST
        self.server_port = server_port or self.config.SERVER_PORT
        self.engine_loader = self._engine_loader(engine_key, engine_key_path)
        self.chain_id = chain_id or self.config.CHAIN_ID
        self.chain = self._chain(chain_id)
        self.signer = signer or self._signer()

        # Initialize components
        self.key_registry = KeyRegistry(
            key_registry_path or self.config.KEY_REGISTRY_PATH
        )
        self.gateway = LocalGateway(
            self.engine_loader, self.chain_id, key_registry=self.key_registry
        )
        self.client = FhevmClient(
            signer=self.signer,
            chain=self.chain,
            engine_loader=self.engine_loader,
            gateway=self.gateway,
        )
        self.service = FhevmService(
            config=self.config,
            client=self.client,
            gateway=self.gateway,
            key_registry=self.key_registry,
            logger=self.logger,
        )

        self.app = FastAPI(title="fhEVM session API")
        self.routes = FhevmRoutes(self.service)
        self.routes.setup_routes(self.app)

        self.logger.info(
            "Server configured for http://%s:%s on chain %s",
            self.server_host,
            self.server_port,
            self.chain_id,
        )
        self.logger.info("Gateway signer: %s", self.signer_address)

    def _engine_loader(
        self, engine_key: bytes | None, engine_key_path: Path | None
    ) -> LocalEngineLoader:
        """Engine from an explicit key, the key file, or an ephemeral key."""
        if engine_key is not None:
            return LocalEngineLoader(key=engine_key)
        key_path = engine_key_path or self.config.ENGINE_KEY_PATH
        if key_path.exists():
            return LocalEngineLoader(key_path=key_path)
        self.logger.warning(
            "No engine key at %s, handles will not survive a restart. "
            "Run 'fhevm-session keygen' to create one.",
            key_path,
        )
        return LocalEngineLoader()

    def _chain(self, chain_id: int | None) -> ChainReader:
        if chain_id is None and self.config.RPC_URL:
            return RpcChain(self.config.RPC_URL)
        return StaticChain(self.chain_id)

    def _signer(self) -> LocalSigner:
        if self.config.PRIVATE_KEY:
            return LocalSigner.from_key(self.config.PRIVATE_KEY)
        self.logger.info("No FHEVM_PRIVATE_KEY set, using an ephemeral signer")
        return LocalSigner.create()

    @property
    def signer_address(self) -> str | None:
        if isinstance(self.signer, LocalSigner):
            return self.signer.address
        return None
