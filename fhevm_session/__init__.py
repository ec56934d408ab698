# fhEVM session toolkit

from fhevm_session.client.client import FhevmClient, create_client
from fhevm_session.client.wallet import LocalSigner, RpcChain, StaticChain
from fhevm_session.common.exceptions import (
    AuthorizationError,
    DecryptionError,
    EncryptionError,
    FhevmError,
    InitializationError,
    SignatureError,
    ValidationError,
)
from fhevm_session.common.models import (
    ClientOptions,
    DataKind,
    DecryptionRequest,
    DecryptionResult,
    EncryptionRecord,
)

__all__ = [
    "AuthorizationError",
    "ClientOptions",
    "DataKind",
    "DecryptionError",
    "DecryptionRequest",
    "DecryptionResult",
    "EncryptionError",
    "EncryptionRecord",
    "FhevmClient",
    "FhevmError",
    "InitializationError",
    "LocalSigner",
    "RpcChain",
    "SignatureError",
    "StaticChain",
    "ValidationError",
    "create_client",
]
