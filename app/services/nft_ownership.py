import logging
from typing import Optional

import requests
from sqlalchemy.orm import Session
from web3 import Web3

from app.core.config import settings
from app.models.token import Token
from app.models.user import User
from app.services import chat_tokens
from app.services import contract as chain

logger = logging.getLogger(__name__)

OPENSEA_NFTS_URL = "https://api.opensea.io/api/v2/chain/base/account/{wallet}/nfts"


def ipfs_to_gateway(uri: Optional[str]) -> Optional[str]:
    if not uri:
        return None
    if uri.startswith("ipfs://"):
        return f"{settings.IPFS_GATEWAY}{uri.removeprefix('ipfs://')}"
    return uri


def check_via_opensea(wallet: str) -> bool:
    headers = {"Accept": "application/json"}
    if settings.OPENSEA_API_KEY:
        headers["X-API-KEY"] = settings.OPENSEA_API_KEY

    response = requests.get(
        OPENSEA_NFTS_URL.format(wallet=wallet),
        headers=headers,
        params={"limit": 100},
        timeout=10,
    )
    response.raise_for_status()

    nfts = response.json().get("nfts", [])
    contract_address = settings.CONTRACT_ADDRESS.lower()
    matching = [
        nft for nft in nfts
        if (nft.get("contract") or nft.get("contract_address") or "").lower() == contract_address
    ]
    logger.info("✅ OpenSea check for %s…: %s of %s NFTs match", wallet[:10], len(matching), len(nfts))
    return bool(matching)


def _image_for_token(db: Session, token_id: int) -> Optional[str]:
    try:
        row = db.query(Token).filter(Token.token_id == token_id).first()
    except Exception as e:
        logger.warning("Database lookup failed for NFT image: %s", e)
        row = None
    if row:
        return ipfs_to_gateway(row.image_uri or row.token_uri)

    try:
        return ipfs_to_gateway(chain.token_uri(token_id))
    except Exception as e:
        logger.warning("tokenURI lookup failed for token %s: %s", token_id, e)
        return None


def find_nft_image(
    db: Session,
    wallet: Optional[str] = None,
    nft_token_id: Optional[int] = None,
) -> tuple[Optional[str], Optional[int]]:
    """
    Image for an NFT as `(gateway_url, token_id)`. Looks up the token id
    first, then the wallet via users and tokens, then the contract.
    """
    wallet = wallet.strip().lower() if wallet else None
    lookups = []
    if nft_token_id is not None:
        lookups.append(("token_id", lambda: db.query(Token).filter(Token.token_id == nft_token_id).first()))
    if wallet:
        lookups.append(("users table", lambda: _token_via_user(db, wallet)))
        lookups.append(("tokens table", lambda: db.query(Token).filter(Token.wallet_address == wallet).first()))

    for source, lookup in lookups:
        try:
            row = lookup()
        except Exception as e:
            db.rollback()
            logger.warning("⚠️ NFT image lookup by %s failed: %s", source, e)
            continue
        if row and row.image_uri:
            logger.info("✅ Found NFT image by %s", source)
            return ipfs_to_gateway(row.image_uri), row.token_id or None

    if not wallet or not Web3.is_address(wallet):
        return None, None
    try:
        checksum_wallet = Web3.to_checksum_address(wallet)
        if chain.balance_of(checksum_wallet) == 0:
            return None, None
        token_id = chain.token_of_owner_by_index(checksum_wallet, 0)
    except Exception as e:
        logger.warning("⚠️ Contract lookup for NFT image failed: %s", e)
        return None, None
    return _image_for_token(db, token_id), token_id


def _token_via_user(db: Session, wallet: str) -> Optional[Token]:
    user = db.query(User).filter(User.wallet_address == wallet).first()
    if user is None:
        return None
    return db.query(Token).filter(Token.x_user_id == user.x_user_id).first()


def check_ownership(db: Session, wallet: str) -> dict:
    """
    Contract first; OpenSea only when the RPC call itself fails. Raises
    when both sources are unavailable.
    """
    result = {"hasNFT": False, "balance": "0", "method": "contract", "nftImageUrl": None, "tokenId": None}

    try:
        balance = chain.balance_of(wallet)
    except Exception as contract_error:
        logger.warning("⚠️ Contract check failed, trying OpenSea API: %s", contract_error)
        has_nft = check_via_opensea(wallet)
        result.update(hasNFT=has_nft, balance="1" if has_nft else "0", method="opensea")
        return result

    result.update(hasNFT=balance > 0, balance=str(balance))
    if balance > 0:
        try:
            token_id = chain.token_of_owner_by_index(wallet, 0)
            result["tokenId"] = token_id
            result["nftImageUrl"] = _image_for_token(db, token_id)
        except Exception as e:
            logger.warning("Failed to get token ID or image: %s", e)
    return result


def owns_nft_onchain(wallet: str) -> bool:
    try:
        return chain.balance_of(wallet) > 0
    except Exception as e:
        logger.error("Error checking NFT ownership from blockchain: %s", e)
        return False


def ensure_chat_tokens_record_for_nft_owner(db: Session, wallet: str) -> bool:
    """Create an empty chat_tokens row for holders (including transferred NFTs)."""
    if chat_tokens.get_record(db, wallet):
        return True
    if not owns_nft_onchain(wallet):
        return False

    logger.info("✅ Creating chat_tokens record for NFT owner %s…", chat_tokens.normalize_wallet(wallet)[:10])
    chat_tokens.create_empty_record(db, wallet)
    return True
