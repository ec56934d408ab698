"""Domain layer: client session state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fhevm_session.common.interfaces import CryptoEngine, Signer
    from fhevm_session.common.models import DataKind, EncryptionRecord


class ClientStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass
class SessionState:
    """Per-client state. Nothing here is shared between client instances."""

    status: ClientStatus = ClientStatus.UNINITIALIZED
    engine: CryptoEngine | None = None
    signer: Signer | None = None
    encryption_cache: dict[tuple[DataKind, Any], EncryptionRecord] = field(
        default_factory=dict
    )
    last_error: str | None = None

    @property
    def initialized(self) -> bool:
        return self.status is ClientStatus.READY
