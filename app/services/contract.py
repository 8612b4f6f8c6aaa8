# app/services/contract.py
from web3 import Web3
from app.core.config import settings

# xFrora NFT (ERC-721) on Base mainnet (chainId 8453)
NFT_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "user", "type": "address"}],
        "name": "getNonce",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "name": "usedXUserId",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "uint256", "name": "index", "type": "uint256"},
        ],
        "name": "tokenOfOwnerByIndex",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "tokenId", "type": "uint256"}],
        "name": "tokenURI",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]

w3 = Web3(Web3.HTTPProvider(settings.RPC_URL, request_kwargs={"timeout": settings.RPC_TIMEOUT_SECONDS}))
NFT_CONTRACT = w3.eth.contract(
    address=Web3.to_checksum_address(settings.CONTRACT_ADDRESS),
    abi=NFT_ABI,
)


def hash_x_user_id(fid) -> int:
    """The contract keys identities by keccak256 of the fid's decimal string."""
    return int.from_bytes(Web3.keccak(text=str(fid)), "big")


def is_x_user_id_used(fid) -> bool:
    return bool(NFT_CONTRACT.functions.usedXUserId(hash_x_user_id(fid)).call())


def get_nonce(wallet: str) -> int:
    return int(NFT_CONTRACT.functions.getNonce(Web3.to_checksum_address(wallet)).call())


def balance_of(wallet: str) -> int:
    return int(NFT_CONTRACT.functions.balanceOf(Web3.to_checksum_address(wallet)).call())


def token_of_owner_by_index(wallet: str, index: int = 0) -> int:
    return int(
        NFT_CONTRACT.functions.tokenOfOwnerByIndex(Web3.to_checksum_address(wallet), index).call()
    )


def token_uri(token_id: int) -> str:
    return NFT_CONTRACT.functions.tokenURI(int(token_id)).call()
