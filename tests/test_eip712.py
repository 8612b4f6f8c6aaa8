import pytest
from web3 import Web3

from app.core.config import settings
from app.schemas.mint import MintAuth
from app.services.contract import hash_x_user_id
from app.services.eip712 import (
    SigningError,
    eip712_domain,
    normalize_uint256,
    server_signer_address,
    sign_mint_auth,
    verify_mint_auth,
)
from conftest import SIGNER_ADDRESS, WALLET


def _auth(**overrides):
    fields = {
        "to": WALLET,
        "payer": WALLET,
        "xUserId": str(hash_x_user_id(1234)),
        "tokenURI": "ipfs://QmMeta1234",
        "nonce": "0",
        "deadline": "1900000000",
    }
    fields.update(overrides)
    return MintAuth(**fields)


def test_domain_matches_contract():
    domain = eip712_domain()
    assert domain["name"] == "X Animal NFT"
    assert domain["version"] == "1"
    assert domain["chainId"] == 8453
    assert domain["verifyingContract"] == Web3.to_checksum_address(settings.CONTRACT_ADDRESS)


def test_signature_recovers_server_signer():
    auth = _auth()
    signature = sign_mint_auth(auth)

    assert signature.startswith("0x")
    assert len(signature) == 132
    assert server_signer_address() == SIGNER_ADDRESS
    assert verify_mint_auth(auth, signature) == SIGNER_ADDRESS


def test_tampered_auth_does_not_recover_signer():
    signature = sign_mint_auth(_auth())
    tampered = _auth(tokenURI="ipfs://QmSomethingElse")
    assert verify_mint_auth(tampered, signature) != SIGNER_ADDRESS


def test_hex_and_decimal_uint256_sign_identically():
    decimal = sign_mint_auth(_auth(nonce="255", deadline="1900000000"))
    hexed = sign_mint_auth(_auth(nonce="0xff", deadline=hex(1900000000)))
    assert decimal == hexed


def test_missing_signer_key(monkeypatch):
    monkeypatch.setattr(settings, "SERVER_SIGNER_PRIVATE_KEY", "")
    with pytest.raises(SigningError):
        sign_mint_auth(_auth())


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (42, "42"),
        ("42", "42"),
        (" 42 ", "42"),
        ("0x2a", "42"),
        (2**256 - 1, str(2**256 - 1)),
    ],
)
def test_normalize_uint256(value, expected):
    assert normalize_uint256(value) == expected


@pytest.mark.parametrize("value", [-1, 2**256, "abc", "", None, True, "1.5"])
def test_normalize_uint256_rejects(value):
    with pytest.raises(SigningError):
        normalize_uint256(value)


def test_hash_x_user_id_is_keccak_of_decimal_string():
    assert hash_x_user_id(1234) == int.from_bytes(Web3.keccak(text="1234"), "big")
    assert hash_x_user_id("1234") == hash_x_user_id(1234)
