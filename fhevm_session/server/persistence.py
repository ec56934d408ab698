"""
Data persistence utilities.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path  # noqa: TC003

from pydantic import ValidationError as PydanticValidationError

from fhevm_session.common.models import KeyRecord

logger = logging.getLogger(__name__)


class DataPersistence:
    """Handles loading and saving persistent data."""

    @staticmethod
    def load_key_records(file_path: Path) -> dict[str, KeyRecord]:
        """Load key records from file, keyed by lowercase contract address."""
        try:
            with file_path.open() as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("Key registry %s is not valid JSON, starting empty", file_path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Key registry %s has an unexpected layout, starting empty", file_path)
            return {}

        records: dict[str, KeyRecord] = {}
        for contract, raw in data.items():
            try:
                records[contract] = KeyRecord.model_validate(raw)
            except PydanticValidationError:
                logger.warning("Skipping malformed key record for %s", contract)
        return records

    @staticmethod
    def save_key_records(file_path: Path, records: dict[str, KeyRecord]) -> None:
        """Save key records to file."""
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with file_path.open("w") as f:
            json.dump({k: v.model_dump() for k, v in records.items()}, f, indent=2)
