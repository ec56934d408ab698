"""
Session client for encrypted values: lazy engine start-up, type-tagged
encryption with caching, and public, user and batched decryption.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from fhevm_session.client import signing
from fhevm_session.client.domain.entities import ClientStatus, SessionState
from fhevm_session.client.gateway import HttpGateway, UnavailableGateway
from fhevm_session.client.wallet import StaticChain
from fhevm_session.common.codec import (
    coerce_kind,
    stringify,
    validate,
    validate_address,
    validate_handle,
)
from fhevm_session.common.config import Config
from fhevm_session.common.crypto import CryptoUtils
from fhevm_session.common.decorators import requires_signer
from fhevm_session.common.engine import LocalEngineLoader
from fhevm_session.common.exceptions import (
    EncryptionError,
    InitializationError,
    ValidationError,
)
from fhevm_session.common.logging_utils import level_for, setup_logger
from fhevm_session.common.models import (
    ClientOptions,
    DataKind,
    DecryptionRequest,
    DecryptionResult,
    EncryptionRecord,
    GatewayDecryptRequest,
    KeyInfo,
)

if TYPE_CHECKING:
    from fhevm_session.common.interfaces import (
        ChainReader,
        CryptoEngine,
        EngineLoader,
        GatewayTransport,
        Signer,
    )


class FhevmClient:
    """Client for encrypting values and decrypting ciphertext handles.

    Every operation that needs the crypto engine initializes it on first use.
    Concurrent callers share a single in-flight initialization.
    """

    def __init__(
        self,
        signer: Signer | None = None,
        chain: ChainReader | None = None,
        engine_loader: EngineLoader | None = None,
        gateway: GatewayTransport | None = None,
        gateway_url: str | None = None,
        options: ClientOptions | Mapping[str, Any] | None = None,
        **extra_options: Any,
    ):
        self.config = Config()
        self.options = self._build_options(options, extra_options)

        self.chain: ChainReader = chain or StaticChain(self.config.CHAIN_ID)
        self.engine_loader: EngineLoader = engine_loader or LocalEngineLoader()
        gateway_url = gateway_url or self.config.GATEWAY_URL
        if gateway is not None:
            self.gateway: GatewayTransport = gateway
        elif gateway_url:
            self.gateway = HttpGateway(
                gateway_url,
                retry_attempts=self.options.retry_attempts,
                retry_delay_ms=self.options.retry_delay_ms,
            )
        else:
            self.gateway = UnavailableGateway()

        self._state = SessionState(signer=signer)
        self._init_task: asyncio.Task[None] | None = None

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{id(self):x}")
        setup_logger(self.logger, level_for(self.options.debug, self.config.LOG_LEVEL))

    @staticmethod
    def _build_options(
        options: ClientOptions | Mapping[str, Any] | None, extra: dict[str, Any]
    ) -> ClientOptions:
        if isinstance(options, ClientOptions) and not extra:
            return options
        merged: dict[str, Any] = {}
        if isinstance(options, ClientOptions):
            merged.update(options.model_dump())
        elif options is not None:
            merged.update(options)
        merged.update(extra)
        return ClientOptions.model_validate(merged)

    # Lifecycle

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> ClientStatus:
        return self._state.status

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    @property
    def engine(self) -> CryptoEngine:
        """The loaded engine. InitializationError until init() succeeded."""
        if not self._state.initialized or self._state.engine is None:
            msg = "fhEVM not initialized. Call init() first."
            raise InitializationError(msg)
        return self._state.engine

    async def init(self) -> None:
        """Load the crypto engine once.

        Raises:
            InitializationError: the engine could not be loaded; a later call
                starts a fresh attempt
        """
        if self._state.status is ClientStatus.READY:
            self.logger.debug("Already initialized")
            return

        if self._init_task is None:
            self._state.status = ClientStatus.INITIALIZING
            self._init_task = asyncio.ensure_future(self._load_engine())
        else:
            self.logger.debug("Initialization in flight, waiting for it")

        # shield: one cancelled caller must not cancel the shared load
        await asyncio.shield(self._init_task)

    async def _load_engine(self) -> None:
        try:
            engine = await self.engine_loader.load()
        except Exception as e:
            self._state.status = ClientStatus.FAILED
            self._state.last_error = str(e)
            self._init_task = None
            self.logger.error("Initialization failed: %s", e)  # noqa: TRY400
            if isinstance(e, InitializationError):
                raise
            msg = f"Failed to initialize fhEVM: {e}"
            raise InitializationError(msg) from e

        self._state.engine = engine
        self._state.status = ClientStatus.READY
        self._state.last_error = None
        self._init_task = None
        self.logger.debug("Initialization successful")

    def reset(self) -> None:
        """Drop the engine and the cache and return to uninitialized.

        The configured signer is kept; use set_signer() to rotate it.
        """
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        self._init_task = None
        signer = self._state.signer
        self._state = SessionState(signer=signer)
        self.logger.debug("Client reset")

    # Signing identity

    @property
    def signer(self) -> Signer | None:
        return self._state.signer

    def set_signer(self, signer: Signer | None) -> None:
        self._state.signer = signer

    # Encryption

    async def encrypt(self, value: Any, kind: DataKind | str) -> EncryptionRecord:
        """Encrypt a plaintext value as the given data kind.

        Args:
            value: Number, string or boolean to encrypt
            kind: uint8, uint16, uint32, uint64, address or bool

        Returns:
            EncryptionRecord holding the 0x-prefixed ciphertext handle

        Raises:
            EncryptionError: validation or engine failure, chained to the cause
            InitializationError: the engine could not be loaded
        """
        try:
            data_kind = coerce_kind(kind)
            normalized = validate(value, data_kind)
        except ValidationError as e:
            msg = f"Encryption failed: {e}"
            raise EncryptionError(msg) from e

        await self.init()

        # Keyed on the input as given, so original_value matches on a hit
        cache_key = (data_kind, stringify(value))
        if self.options.enable_cache:
            cached = self._state.encryption_cache.get(cache_key)
            if cached is not None:
                self.logger.debug("Returning cached encryption for %s", data_kind.value)
                return cached

        try:
            raw = self._encrypt_raw(self.engine, data_kind, normalized)
            if inspect.isawaitable(raw):
                raw = await raw
            handle = raw if isinstance(raw, str) else CryptoUtils.bytes_to_handle(raw)
        except Exception as e:
            msg = f"Encryption failed: {e}"
            raise EncryptionError(msg) from e

        record = EncryptionRecord(
            data=handle,
            original_value=stringify(value),
            data_kind=data_kind,
            timestamp=int(time.time() * 1000),
        )
        if self.options.enable_cache:
            # last writer wins for concurrent encryptions of the same key
            self._state.encryption_cache[cache_key] = record
        return record

    @staticmethod
    def _encrypt_raw(engine: CryptoEngine, kind: DataKind, value: Any) -> Any:
        if kind.is_unsigned:
            return engine.encrypt_uint(kind.bits, value)
        if kind is DataKind.ADDRESS:
            return engine.encrypt_address(value)
        return engine.encrypt_bool(value)

    def clear_cache(self) -> None:
        self._state.encryption_cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._state.encryption_cache)

    # Decryption

    @staticmethod
    def _failure(mode: str, handle: Any, error: Exception | str) -> DecryptionResult:
        return DecryptionResult(
            success=False,
            error=str(error) or type(error).__name__,
            mode=mode,
            handle=handle if isinstance(handle, str) else None,
        )

    async def public_decrypt(self, handle: str) -> DecryptionResult:
        """Decrypt a publicly decryptable handle, no signature involved.

        Decryption failures come back in-band; only InitializationError raises.
        """
        await self.init()
        try:
            validate_handle(handle)
            value = self.engine.decrypt(handle)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:  # noqa: BLE001
            self.logger.debug("Public decryption failed: %s", e)
            return self._failure("public", handle, e)
        return DecryptionResult(value=value, success=True, mode="public", handle=handle)

    @requires_signer()
    async def user_decrypt(self, contract_address: str, handle: str) -> DecryptionResult:
        """Decrypt a handle through the gateway with an EIP-712 authorization.

        Raises:
            AuthorizationError: no signer is configured
            InitializationError: the engine could not be loaded
        """
        await self.init()
        signer = self._state.signer
        assert signer is not None
        try:
            validate_address(contract_address)
            validate_handle(handle)
            user_address = await signer.get_address()
            chain_id = await self.chain.get_chain_id()
            domain = signing.build_domain(chain_id, contract_address)
            signature = await signing.sign(signer, domain, handle, user_address)
            response = await self.gateway.user_decrypt(
                GatewayDecryptRequest(
                    contract_address=contract_address,
                    handle=handle,
                    signature=signature.signature,
                    user_address=user_address,
                    chain_id=chain_id,
                )
            )
        except Exception as e:  # noqa: BLE001
            self.logger.debug("User decryption failed: %s", e)
            return self._failure("user", handle, e)

        if not response.success:
            return self._failure(
                "user", handle, response.error or "Gateway declined decryption"
            )
        return DecryptionResult(
            value=response.value, success=True, mode="user", handle=handle
        )

    async def batch_decrypt(
        self, requests: Iterable[DecryptionRequest | Mapping[str, Any] | str]
    ) -> list[DecryptionResult]:
        """Decrypt each request independently, one result per request in order."""
        results: list[DecryptionResult] = []
        for item in requests:
            mode = "public"
            handle: Any = item
            try:
                request = self._coerce_request(item)
                handle = request.handle
                if request.is_public:
                    result = await self.public_decrypt(request.handle)
                else:
                    mode = "user"
                    if not request.contract_address:
                        msg = "Contract address is required for user decryption"
                        raise ValidationError(msg)
                    result = await self.user_decrypt(
                        request.contract_address, request.handle
                    )
            except Exception as e:  # noqa: BLE001
                result = self._failure(mode, handle, e)
            results.append(result)
        return results

    @staticmethod
    def _coerce_request(
        item: DecryptionRequest | Mapping[str, Any] | str,
    ) -> DecryptionRequest:
        if isinstance(item, DecryptionRequest):
            return item
        if isinstance(item, str):
            return DecryptionRequest(handle=item)
        return DecryptionRequest.model_validate(item)

    # Keys

    async def get_public_key(self, contract_address: str) -> KeyInfo:
        """Fetch the public key registered for a contract from the gateway."""
        validate_address(contract_address)
        return await self.gateway.fetch_public_key(contract_address)


async def create_client(
    signer: Signer | None = None,
    chain: ChainReader | None = None,
    **kwargs: Any,
) -> FhevmClient:
    """Create a client and initialize it before returning."""
    client = FhevmClient(signer=signer, chain=chain, **kwargs)
    await client.init()
    return client
