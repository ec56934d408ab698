"""
Crypto engine loaders and the local development engine.

The real FHE engine is an external library. ``ImportEngineLoader`` resolves one
from a ``package.module:factory`` path; ``LocalEngine`` is an authenticated
symmetric stand-in for development and tests that honours the same primitives.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
import os
from typing import TYPE_CHECKING, Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from fhevm_session.common.config import Config
from fhevm_session.common.crypto import CryptoUtils
from fhevm_session.common.exceptions import DecryptionError, InitializationError

if TYPE_CHECKING:
    from pathlib import Path

    from fhevm_session.common.interfaces import CryptoEngine

logger = logging.getLogger(__name__)

NONCE_LEN = 12
ADDRESS_BYTES = 20

# Handle layout: kind tag (1) | nonce (12) | ciphertext + poly1305 tag
TAG_UINT = {8: 0x01, 16: 0x02, 32: 0x03, 64: 0x04}
TAG_ADDRESS = 0x05
TAG_BOOL = 0x06
_UINT_BITS = {tag: bits for bits, tag in TAG_UINT.items()}


class LocalEngine:
    """Development engine: ChaCha20-Poly1305 sealed scalars."""

    def __init__(self, key: bytes):
        self._aead = ChaCha20Poly1305(key)

    def _seal(self, tag: int, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_LEN)
        header = bytes([tag])
        return header + nonce + self._aead.encrypt(nonce, plaintext, header)

    def encrypt_uint(self, bits: int, value: int) -> bytes:
        if bits not in TAG_UINT:
            msg = f"Unsupported bit width: {bits}"
            raise ValueError(msg)
        return self._seal(TAG_UINT[bits], value.to_bytes(bits // 8, "big"))

    def encrypt_address(self, address: str) -> bytes:
        raw = CryptoUtils.handle_to_bytes(address)
        if len(raw) != ADDRESS_BYTES:
            msg = "Address must be 20 bytes"
            raise ValueError(msg)
        return self._seal(TAG_ADDRESS, raw)

    def encrypt_bool(self, value: bool) -> bytes:  # noqa: FBT001
        return self._seal(TAG_BOOL, b"\x01" if value else b"\x00")

    def decrypt(self, handle: str) -> int | str | bool:
        try:
            raw = CryptoUtils.handle_to_bytes(handle)
        except ValueError as err:
            msg = "Handle is not valid hex"
            raise DecryptionError(msg) from err
        if len(raw) <= 1 + NONCE_LEN:
            msg = "Handle too short"
            raise DecryptionError(msg)

        header, nonce, sealed = raw[:1], raw[1 : 1 + NONCE_LEN], raw[1 + NONCE_LEN :]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, header)
        except InvalidTag as err:
            msg = "Handle failed authentication"
            raise DecryptionError(msg) from err

        tag = header[0]
        if tag in _UINT_BITS:
            return int.from_bytes(plaintext, "big")
        if tag == TAG_ADDRESS:
            return CryptoUtils.bytes_to_handle(plaintext)
        if tag == TAG_BOOL:
            return plaintext == b"\x01"
        msg = f"Unknown handle type tag: {tag:#x}"
        raise DecryptionError(msg)


class LocalEngineLoader:
    """Loads a LocalEngine from an explicit key, a key file, or a fresh key."""

    def __init__(self, key: bytes | None = None, key_path: Path | None = None):
        self.key = key
        self.key_path = key_path

    async def load(self) -> LocalEngine:
        if self.key is None:
            if self.key_path is not None:
                try:
                    self.key = Config().load_engine_key(self.key_path)
                except ValueError as err:
                    raise InitializationError(str(err)) from err
            else:
                logger.debug("No engine key configured, generating one")
                self.key = CryptoUtils.generate_engine_key()
        try:
            return LocalEngine(self.key)
        except ValueError as err:
            msg = f"Invalid engine key: {err}"
            raise InitializationError(msg) from err


class ImportEngineLoader:
    """Loads an external engine from a ``module:factory`` path."""

    def __init__(self, target: str, **factory_kwargs: Any):
        self.target = target
        self.factory_kwargs = factory_kwargs

    async def load(self) -> CryptoEngine:
        module_name, _, attr = self.target.partition(":")
        if not module_name or not attr:
            msg = f"Engine target must look like 'module:factory', got {self.target!r}"
            raise InitializationError(msg)
        try:
            module = await asyncio.to_thread(importlib.import_module, module_name)
            factory = getattr(module, attr)
            engine = factory(**self.factory_kwargs)
            if inspect.isawaitable(engine):
                engine = await engine
        except Exception as e:
            msg = f"Failed to initialize fhEVM engine: {e}"
            raise InitializationError(msg) from e
        logger.debug("Loaded engine from %s", self.target)
        return engine
