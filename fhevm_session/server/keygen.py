"""
Key generator for the local engine key file.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fhevm_session.common.config import Config
from fhevm_session.common.crypto import CryptoUtils

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class KeyGenerator:
    """Writes the symmetric key used by the local engine."""

    def __init__(self, keys_dir: Path | None = None):
        config = Config()
        self.keys_dir = keys_dir or config.KEYS_DIR

    @property
    def key_path(self) -> Path:
        return self.keys_dir / "engine.key"

    def generate_keys(self, overwrite: bool = False) -> Path:  # noqa: FBT001, FBT002
        """Generate and save the engine key, returning its path.

        Raises:
            FileExistsError: a key exists and overwrite is False
        """
        if self.key_path.exists() and not overwrite:
            msg = f"Engine key already exists at {self.key_path}"
            raise FileExistsError(msg)

        logger.info("Generating engine key...")
        key = CryptoUtils.generate_engine_key()

        self.keys_dir.mkdir(parents=True, exist_ok=True)
        with self.key_path.open("w") as f:
            f.write(key.hex())
        self.key_path.chmod(0o600)

        logger.info("Engine key saved: %s", self.key_path)
        logger.info("Handles encrypted under this key are unreadable without it.")
        return self.key_path
