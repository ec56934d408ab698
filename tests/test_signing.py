from typing import Any

import pytest
from eth_account import Account

from fhevm_session.client import signing
from fhevm_session.client.wallet import LocalSigner
from fhevm_session.common.exceptions import SignatureError

CONTRACT = "0x" + "12" * 20
OTHER_CONTRACT = "0x" + "34" * 20
HANDLE_A = "0x" + "aa" * 32
HANDLE_B = "0x" + "bb" * 32
SHORT_HANDLE = "0x010203"


@pytest.fixture
def signer() -> LocalSigner:
    return LocalSigner(Account.create())


async def _signature(signer: LocalSigner, handle: str, chain_id: int = 31337) -> str:
    domain = signing.build_domain(chain_id, CONTRACT)
    result = await signing.sign(signer, domain, handle, signer.address)
    return result.signature


def test_build_domain() -> None:
    domain = signing.build_domain(11155111, CONTRACT)
    assert domain.name == "FhevmDecryption"
    assert domain.version == "1"
    assert domain.chain_id == 11155111  # noqa: PLR2004
    assert domain.verifying_contract == CONTRACT


def test_decryption_message_binds_handle_as_bytes32() -> None:
    message = signing.decryption_message(HANDLE_A, CONTRACT)
    assert message == {"handle": HANDLE_A, "user": CONTRACT}

    short = signing.decryption_message(SHORT_HANDLE, CONTRACT)
    assert len(short["handle"]) == 66  # noqa: PLR2004
    assert short["handle"] != SHORT_HANDLE


def test_typed_data_hash_is_deterministic() -> None:
    domain = signing.build_domain(31337, CONTRACT)
    digest = signing.typed_data_hash(domain, HANDLE_A, CONTRACT)
    assert digest == signing.typed_data_hash(domain, HANDLE_A, CONTRACT)
    assert digest.startswith("0x")
    assert len(digest) == 66  # noqa: PLR2004
    assert digest != signing.typed_data_hash(domain, HANDLE_B, CONTRACT)


@pytest.mark.asyncio
async def test_sign_returns_signature_result(signer: LocalSigner) -> None:
    domain = signing.build_domain(31337, CONTRACT)
    result = await signing.sign(signer, domain, HANDLE_A, signer.address)
    assert result.signer_address == signer.address
    assert result.message_hash == signing.typed_data_hash(
        domain, HANDLE_A, signer.address
    )
    assert result.signature.startswith("0x")
    assert len(result.signature) == 132  # noqa: PLR2004


@pytest.mark.asyncio
async def test_verify_accepts_signer(signer: LocalSigner) -> None:
    signature = await _signature(signer, HANDLE_A)
    domain = signing.build_domain(31337, CONTRACT)
    assert signing.verify(
        signature, domain, HANDLE_A, signer.address, signer.address.lower()
    )
    assert (
        signing.recover_signer(signature, domain, HANDLE_A, signer.address)
        == signer.address
    )


@pytest.mark.asyncio
async def test_verify_rejects_other_handle(signer: LocalSigner) -> None:
    signature = await _signature(signer, HANDLE_A)
    domain = signing.build_domain(31337, CONTRACT)
    assert not signing.verify(
        signature, domain, HANDLE_B, signer.address, signer.address
    )


@pytest.mark.asyncio
async def test_verify_rejects_other_domain(signer: LocalSigner) -> None:
    signature = await _signature(signer, HANDLE_A)
    other_contract = signing.build_domain(31337, OTHER_CONTRACT)
    other_chain = signing.build_domain(11155111, CONTRACT)
    for domain in (other_contract, other_chain):
        assert not signing.verify(
            signature, domain, HANDLE_A, signer.address, signer.address
        )


@pytest.mark.asyncio
async def test_verify_rejects_other_signer(signer: LocalSigner) -> None:
    signature = await _signature(signer, HANDLE_A)
    domain = signing.build_domain(31337, CONTRACT)
    stranger = Account.create().address
    assert not signing.verify(signature, domain, HANDLE_A, signer.address, stranger)


def test_verify_never_raises_on_garbage() -> None:
    domain = signing.build_domain(31337, CONTRACT)
    assert not signing.verify("0x1234", domain, HANDLE_A, CONTRACT, CONTRACT)
    assert not signing.verify("not-hex", domain, HANDLE_A, CONTRACT, CONTRACT)


@pytest.mark.asyncio
async def test_sign_wraps_signer_failure() -> None:
    class RejectingSigner:
        async def get_address(self) -> str:
            return CONTRACT

        async def sign_typed_data(self, *args: Any) -> str:
            msg = "user rejected the request"
            raise RuntimeError(msg)

    domain = signing.build_domain(31337, CONTRACT)
    with pytest.raises(SignatureError, match="user rejected"):
        await signing.sign(RejectingSigner(), domain, HANDLE_A, CONTRACT)
