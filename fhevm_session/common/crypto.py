"""Common cryptographic utilities.
"""

from __future__ import annotations

import os

from eth_utils import keccak

from fhevm_session.common.config import ENGINE_KEY_LEN

BYTES32_LEN = 32


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def generate_engine_key() -> bytes:
        """Fresh random key for the local engine."""
        return os.urandom(ENGINE_KEY_LEN)

    @staticmethod
    def bytes_to_handle(data: bytes) -> str:
        """Wrap raw ciphertext bytes as a 0x-prefixed hex handle."""
        return "0x" + bytes(data).hex()

    @staticmethod
    def handle_to_bytes(handle: str) -> bytes:
        text = handle[2:] if handle.lower().startswith("0x") else handle
        return bytes.fromhex(text)

    @staticmethod
    def to_bytes32(handle: str) -> bytes:
        """Bind a handle to a bytes32 value.

        32-byte handles are used verbatim; any other length is reduced to
        keccak256 of the handle bytes.
        """
        raw = CryptoUtils.handle_to_bytes(handle)
        if len(raw) == BYTES32_LEN:
            return raw
        return keccak(raw)
