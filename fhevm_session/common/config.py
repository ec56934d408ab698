"""
Configuration settings for the fhEVM session client and API server.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

ENGINE_KEY_LEN = 32


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # EIP-712 domain for decryption authorization
        self.EIP712_DOMAIN_NAME: str = "FhevmDecryption"
        self.EIP712_DOMAIN_VERSION: str = "1"

        # Client defaults
        self.DEBUG: bool = False
        self.RETRY_ATTEMPTS: int = 3
        self.RETRY_DELAY_MS: int = 1000
        self.ENABLE_CACHE: bool = True
        self.REQUEST_TIMEOUT: float = 30.0  # Seconds per gateway / RPC request

        self.SUPPORTED_NETWORKS: dict[str, dict[str, str | int | bool]] = {
            "sepolia": {
                "chain_id": 11155111,
                "name": "Sepolia",
                "rpc_url": "https://rpc.sepolia.org",
                "explorer_url": "https://sepolia.etherscan.io",
                "testnet": True,
            },
            "localhost": {
                "chain_id": 31337,
                "name": "Localhost",
                "rpc_url": "http://localhost:8545",
                "testnet": True,
            },
        }

        # Network context
        self.CHAIN_ID: int = int(os.getenv("FHEVM_CHAIN_ID", "31337"))
        self.RPC_URL: str | None = os.getenv("FHEVM_RPC_URL")
        self.GATEWAY_URL: str | None = os.getenv("FHEVM_GATEWAY_URL")
        self.PRIVATE_KEY: str | None = os.getenv("FHEVM_PRIVATE_KEY")

        # Server settings
        self.SERVER_HOST: str = os.getenv("FHEVM_SERVER_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("FHEVM_SERVER_PORT", "8000"))
        self.SERVER_URL: str = f"http://{self.SERVER_HOST}:{self.SERVER_PORT}"

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.KEYS_DIR: Path = Path(
            os.getenv("FHEVM_KEYS_DIR", str(self.BASE_DIR / "keys"))
        )
        self.ENGINE_KEY_PATH: Path = self.KEYS_DIR / "engine.key"
        self.KEY_REGISTRY_PATH: Path = self.KEYS_DIR / "registry.json"

        # Logging
        self.LOG_LEVEL: int = logging.INFO

    def network_for_chain(self, chain_id: int) -> dict[str, str | int | bool] | None:
        """Look up a supported network by chain id."""
        for network in self.SUPPORTED_NETWORKS.values():
            if network["chain_id"] == chain_id:
                return network
        return None

    def load_engine_key(self, key_path: Path | None = None) -> bytes:
        """Load the local engine key from its hex key file."""
        path = key_path or self.ENGINE_KEY_PATH
        try:
            with path.open() as f:
                key = bytes.fromhex(f.read().strip())
        except FileNotFoundError as err:
            msg = (
                f"Engine key not found at {path}. "
                "Run 'fhevm-session keygen' to generate it."
            )
            raise ValueError(msg) from err

        if len(key) != ENGINE_KEY_LEN:
            msg = f"Engine key at {path} must be {ENGINE_KEY_LEN} bytes"
            raise ValueError(msg)
        return key
