# app/services/eip712.py
import logging

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from app.core.config import settings
from app.schemas.mint import MintAuth

logger = logging.getLogger(__name__)

MINT_AUTH_TYPES = {
    "MintAuth": [
        {"name": "to", "type": "address"},
        {"name": "payer", "type": "address"},
        {"name": "xUserId", "type": "uint256"},
        {"name": "tokenURI", "type": "string"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}

_UINT256_MAX = 2**256 - 1


class SigningError(Exception):
    pass


def eip712_domain() -> dict:
    return {
        "name": "X Animal NFT",
        "version": "1",
        "chainId": int(settings.CHAIN_ID),
        "verifyingContract": Web3.to_checksum_address(settings.CONTRACT_ADDRESS),
    }


def normalize_uint256(value) -> str:
    """
    Coerce an int, decimal string or 0x-hex string to a canonical decimal
    string. Every uint256 field goes through here so signing and
    verification always see the same representation.
    """
    if isinstance(value, bool):
        raise SigningError(f"Invalid uint256 value: {value!r}")
    try:
        if isinstance(value, int):
            number = value
        else:
            raw = str(value).strip()
            number = int(raw, 16) if raw.lower().startswith("0x") else int(raw, 10)
    except (TypeError, ValueError) as e:
        raise SigningError(f"Invalid uint256 value: {value!r}") from e

    if number < 0 or number > _UINT256_MAX:
        raise SigningError(f"uint256 out of range: {value!r}")
    return str(number)


def _message(auth: MintAuth) -> dict:
    try:
        to = Web3.to_checksum_address(auth.to)
        payer = Web3.to_checksum_address(auth.payer)
    except ValueError as e:
        raise SigningError(f"Invalid address in mint auth: {e}") from e

    return {
        "to": to,
        "payer": payer,
        "xUserId": int(normalize_uint256(auth.x_user_id)),
        "tokenURI": auth.token_uri,
        "nonce": int(normalize_uint256(auth.nonce)),
        "deadline": int(normalize_uint256(auth.deadline)),
    }


def _signable(auth: MintAuth):
    return encode_typed_data(
        domain_data=eip712_domain(),
        message_types=MINT_AUTH_TYPES,
        message_data=_message(auth),
    )


def server_signer_address() -> str:
    if not settings.SERVER_SIGNER_PRIVATE_KEY:
        raise SigningError("SERVER_SIGNER_PRIVATE_KEY not configured")
    return Account.from_key(settings.SERVER_SIGNER_PRIVATE_KEY).address


def sign_mint_auth(auth: MintAuth) -> str:
    if not settings.SERVER_SIGNER_PRIVATE_KEY:
        raise SigningError("SERVER_SIGNER_PRIVATE_KEY not configured")

    signable = _signable(auth)
    try:
        signed = Account.sign_message(signable, private_key=settings.SERVER_SIGNER_PRIVATE_KEY)
    except Exception as e:
        logger.error("EIP-712 signing error: %s (domain=%s)", e, eip712_domain())
        raise SigningError(f"Failed to sign mint auth: {e}") from e

    return Web3.to_hex(signed.signature)


def verify_mint_auth(auth: MintAuth, signature: str) -> str:
    """Return the checksum address that produced `signature` over `auth`."""
    return Account.recover_message(_signable(auth), signature=signature)
