"""
Key registry: public keys registered per contract address.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from fhevm_session.common.codec import validate_address
from fhevm_session.common.exceptions import ValidationError
from fhevm_session.common.models import KeyRecord

from .persistence import DataPersistence

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class KeyRegistry:
    """Registers, revokes and generates contract public keys."""

    def __init__(self, registry_path: Path | None = None):
        self.registry_path = registry_path
        self.records: dict[str, KeyRecord] = (
            DataPersistence.load_key_records(registry_path) if registry_path else {}
        )

    def _save(self) -> None:
        if self.registry_path is not None:
            DataPersistence.save_key_records(self.registry_path, self.records)

    @staticmethod
    def _new_record(contract_address: str | None) -> KeyRecord:
        private_key = X25519PrivateKey.generate()
        public_hex = (
            private_key.public_key()
            .public_bytes(
                serialization.Encoding.Raw,
                serialization.PublicFormat.Raw,
            )
            .hex()
        )
        return KeyRecord(
            public_key="0x" + public_hex,
            key_id=uuid.uuid4().hex,
            contract_address=contract_address,
            created_at=int(time.time()),
        )

    def generate(self) -> KeyRecord:
        """Generate a key not bound to any contract."""
        record = self._new_record(None)
        logger.info("Generated key %s", record.key_id)
        return record

    def register(self, contract_address: str) -> KeyRecord:
        """Bind a fresh key to contract_address.

        A revoked contract may be registered again and gets a new key.
        """
        validate_address(contract_address)
        existing = self.records.get(contract_address.lower())
        if existing is not None and not existing.revoked:
            msg = f"Contract already registered: {contract_address}"
            raise ValidationError(msg, HTTP_CONFLICT)

        record = self._new_record(contract_address)
        self.records[contract_address.lower()] = record
        self._save()
        logger.info("Registered key %s for %s", record.key_id, contract_address)
        return record

    def revoke(self, contract_address: str) -> KeyRecord:
        validate_address(contract_address)
        record = self.records.get(contract_address.lower())
        if record is None or record.revoked:
            msg = f"No active key for contract: {contract_address}"
            raise ValidationError(msg, HTTP_NOT_FOUND)

        record.revoked_at = int(time.time())
        self._save()
        logger.info("Revoked key %s for %s", record.key_id, contract_address)
        return record

    def get(self, contract_address: str) -> KeyRecord:
        """Active key for contract_address, ValidationError(404) if none."""
        validate_address(contract_address)
        record = self.records.get(contract_address.lower())
        if record is None or record.revoked:
            msg = f"No active key for contract: {contract_address}"
            raise ValidationError(msg, HTTP_NOT_FOUND)
        return record

    def is_revoked(self, contract_address: str) -> bool:
        record = self.records.get(contract_address.lower())
        return record is not None and record.revoked
