"""
EIP-712 authorization signatures for user decryption.

A signature binds exactly ``(handle, user)``. The contract address enters only
through the domain's ``verifyingContract``, so a signature cannot be replayed
against another contract or chain.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak, to_checksum_address

from fhevm_session.common.config import Config
from fhevm_session.common.crypto import CryptoUtils
from fhevm_session.common.exceptions import SignatureError
from fhevm_session.common.models import AuthorizationDomain, SignatureResult

if TYPE_CHECKING:
    from fhevm_session.common.interfaces import Signer

logger = logging.getLogger(__name__)

PRIMARY_TYPE = "Decryption"
DECRYPTION_TYPES: dict[str, list[dict[str, str]]] = {
    PRIMARY_TYPE: [
        {"name": "handle", "type": "bytes32"},
        {"name": "user", "type": "address"},
    ]
}


def build_domain(chain_id: int, verifying_contract: str) -> AuthorizationDomain:
    """Create the decryption domain for one chain and contract."""
    config = Config()
    return AuthorizationDomain(
        name=config.EIP712_DOMAIN_NAME,
        version=config.EIP712_DOMAIN_VERSION,
        chain_id=chain_id,
        verifying_contract=verifying_contract,
    )


def decryption_message(handle: str, user_address: str) -> dict[str, str]:
    """Message value as handed to a signer: hex bytes32 handle and user."""
    return {
        "handle": CryptoUtils.bytes_to_handle(CryptoUtils.to_bytes32(handle)),
        "user": user_address,
    }


def encode_message(
    domain: dict[str, Any],
    types: dict[str, list[dict[str, str]]],
    value: dict[str, Any],
) -> SignableMessage:
    """Encode signer-style typed data (hex strings) for eth-account."""
    domain_data = dict(domain)
    if domain_data.get("verifyingContract"):
        domain_data["verifyingContract"] = to_checksum_address(
            domain_data["verifyingContract"]
        )

    message_types = {k: v for k, v in types.items() if k != "EIP712Domain"}
    message_data = dict(value)
    for fields in message_types.values():
        for field in fields:
            item = message_data.get(field["name"])
            if not isinstance(item, str):
                continue
            if field["type"] == "address":
                message_data[field["name"]] = to_checksum_address(item)
            elif field["type"].startswith("bytes"):
                message_data[field["name"]] = CryptoUtils.handle_to_bytes(item)

    return encode_typed_data(
        domain_data=domain_data,
        message_types=message_types,
        message_data=message_data,
    )


def _signable(
    domain: AuthorizationDomain, handle: str, user_address: str
) -> SignableMessage:
    return encode_message(
        domain.to_eip712(), DECRYPTION_TYPES, decryption_message(handle, user_address)
    )


def typed_data_hash(domain: AuthorizationDomain, handle: str, user_address: str) -> str:
    """Canonical EIP-712 digest of the decryption message."""
    signable = _signable(domain, handle, user_address)
    digest = keccak(b"\x19" + signable.version + signable.header + signable.body)
    return CryptoUtils.bytes_to_handle(digest)


async def sign(
    signer: Signer, domain: AuthorizationDomain, handle: str, user_address: str
) -> SignatureResult:
    """Request a typed-data signature authorizing user_address to decrypt handle.

    Raises:
        SignatureError: the signer rejected the request or failed
    """
    try:
        signature = await signer.sign_typed_data(
            domain.to_eip712(),
            DECRYPTION_TYPES,
            decryption_message(handle, user_address),
        )
        signer_address = await signer.get_address()
        message_hash = typed_data_hash(domain, handle, user_address)
    except Exception as e:
        msg = f"Signature generation failed: {e}"
        raise SignatureError(msg) from e

    logger.debug("Signed decryption of %s for %s", handle, user_address)
    return SignatureResult(
        signature=signature,
        signer_address=signer_address,
        message_hash=message_hash,
    )


def recover_signer(
    signature: str, domain: AuthorizationDomain, handle: str, user_address: str
) -> str:
    signable = _signable(domain, handle, user_address)
    return Account.recover_message(
        signable, signature=CryptoUtils.handle_to_bytes(signature)
    )


def verify(
    signature: str,
    domain: AuthorizationDomain,
    handle: str,
    user_address: str,
    expected_signer: str,
) -> bool:
    """True when signature recovers to expected_signer. Never raises."""
    try:
        recovered = recover_signer(signature, domain, handle, user_address)
        return recovered.lower() == expected_signer.lower()
    except Exception as e:  # noqa: BLE001
        logger.debug("Signature recovery failed: %s", e)
        return False
