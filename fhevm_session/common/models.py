"""
Pydantic models for client data and request/response validation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fhevm_session.common.config import Config

_config = Config()


class DataKind(str, Enum):
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    ADDRESS = "address"
    BOOL = "bool"

    @property
    def bits(self) -> int:
        """Bit width for unsigned kinds, 0 for address and bool."""
        if self.value.startswith("uint"):
            return int(self.value[4:])
        return 0

    @property
    def is_unsigned(self) -> bool:
        return self.bits > 0


class FheOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    COMPARE = "compare"
    MIN = "min"
    MAX = "max"
    AND = "and"
    OR = "or"
    XOR = "xor"


class ClientOptions(BaseModel):
    """Options recognized at client construction. Unknown keys are ignored.

    retry_attempts counts retries after the first gateway request, so the
    default of 3 allows up to 4 requests. retry_delay_ms is the first backoff
    delay and doubles on each retry.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    debug: bool = _config.DEBUG
    retry_attempts: int = Field(
        default=_config.RETRY_ATTEMPTS, ge=0, alias="retryAttempts"
    )
    retry_delay_ms: int = Field(
        default=_config.RETRY_DELAY_MS, ge=0, alias="retryDelayMs"
    )
    enable_cache: bool = Field(default=_config.ENABLE_CACHE, alias="enableCache")


class EncryptionRecord(BaseModel):
    data: str
    original_value: str
    data_kind: DataKind
    timestamp: int

    @property
    def handle(self) -> str:
        return self.data


class DecryptionResult(BaseModel):
    value: Any = None
    success: bool
    error: str | None = None
    mode: Literal["public", "user"] = "public"
    handle: str | None = None


class DecryptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: str
    contract_address: str | None = Field(default=None, alias="contractAddress")
    is_public: bool = Field(default=True, alias="isPublic")


class AuthorizationDomain(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = _config.EIP712_DOMAIN_NAME
    version: str = _config.EIP712_DOMAIN_VERSION
    chain_id: int = Field(alias="chainId")
    verifying_contract: str = Field(alias="verifyingContract")

    def to_eip712(self) -> dict[str, Any]:
        """Domain in the key layout EIP-712 signers expect."""
        return self.model_dump(by_alias=True)


class SignatureResult(BaseModel):
    signature: str
    signer_address: str
    message_hash: str


class KeyInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_key: str = Field(alias="publicKey")
    key_id: str = Field(alias="keyId")
    contract_address: str | None = Field(default=None, alias="contractAddress")


class GatewayDecryptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: str
    contract_address: str | None = Field(default=None, alias="contractAddress")
    signature: str | None = None
    user_address: str | None = Field(default=None, alias="userAddress")
    chain_id: int | None = Field(default=None, alias="chainId")


class GatewayDecryptResponse(BaseModel):
    value: Any = None
    success: bool
    error: str | None = None


# HTTP API shapes


class EncryptApiRequest(BaseModel):
    value: int | str | bool
    type: DataKind


class EncryptedPayload(BaseModel):
    data: str
    type: DataKind


class EncryptApiResponse(BaseModel):
    success: bool
    encrypted: EncryptedPayload | None = None
    error: str | None = None


class DecryptApiRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    handle: str
    contract_address: str | None = Field(default=None, alias="contractAddress")
    is_public: bool = Field(default=False, alias="isPublic")


class DecryptApiResponse(BaseModel):
    success: bool
    decrypted: str | None = None
    mode: Literal["public", "user"]
    error: str | None = None


class ComputeApiRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation: FheOperation
    operands: list[str] = Field(min_length=2)
    contract_address: str | None = Field(default=None, alias="contractAddress")

    @model_validator(mode="after")
    def _operands_are_hex(self) -> ComputeApiRequest:
        for operand in self.operands:
            if not operand.startswith("0x") or len(operand) < 3:
                msg = f"operand is not a hex handle: {operand!r}"
                raise ValueError(msg)
        return self


class ComputeApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    operation: FheOperation
    operand_count: int = Field(alias="operandCount")
    note: str


class KeysApiRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["register", "revoke", "generate"]
    contract_address: str | None = Field(default=None, alias="contractAddress")


class KeysApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    public_key: str | None = Field(default=None, alias="publicKey")
    key_id: str | None = Field(default=None, alias="keyId")
    contract_address: str | None = Field(default=None, alias="contractAddress")
    message: str | None = None
    error: str | None = None


class KeyRecord(BaseModel):
    public_key: str
    key_id: str
    contract_address: str | None = None
    created_at: int
    revoked_at: int | None = None

    @property
    def revoked(self) -> bool:
        return self.revoked_at is not None

    def to_key_info(self) -> KeyInfo:
        return KeyInfo(
            public_key=self.public_key,
            key_id=self.key_id,
            contract_address=self.contract_address,
        )


class StatusApiRequest(BaseModel):
    operation: Literal["initialize", "status"]
