import os
import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Hardhat account #0; address 0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ADMIN_KEY = "test-admin-key"
UPDATE_SECRET = "test-update-secret"

CDP_KEY = ec.generate_private_key(ec.SECP256R1())
CDP_KEY_PEM = CDP_KEY.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.TraditionalOpenSSL,
    encryption_algorithm=serialization.NoEncryption(),
).decode("utf-8")
CDP_PUBLIC_PEM = CDP_KEY.public_key().public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo,
).decode("utf-8")

# Settings are read once at import time
os.environ.update({
    "ENV": "test",
    "MOCK_MODE": "true",
    "NEXT_PUBLIC_CHAIN_ID": "8453",
    "SERVER_SIGNER_PRIVATE_KEY": SIGNER_KEY,
    "ADMIN_API_KEY": ADMIN_KEY,
    "UPDATE_TOKEN_SECRET": UPDATE_SECRET,
    "FARCASTER_CLIENT_SECRET": "farcaster-client-secret-for-tests",
    "SESSION_COOKIE_SECURE": "false",
    "CDP_API_KEY_ID": "organizations/test/apiKeys/test-key",
    "CDP_API_KEY_SECRET": CDP_KEY_PEM,
    "X402_VERIFY_BEFORE_SETTLE": "false",
})

from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine, init_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.token import Token  # noqa: E402
from app.services import contract  # noqa: E402

WALLET = "0x1111111111111111111111111111111111111111"
OTHER_WALLET = "0x2222222222222222222222222222222222222222"


class FakeChain:
    """In-memory stand-in for the NFT contract reads."""

    def __init__(self):
        self.used_fids = set()
        self.balances = {}
        self.owned = {}
        self.uris = {}
        self.nonce = 0
        self.rpc_down = False

    def _check(self):
        if self.rpc_down:
            raise ConnectionError("RPC unavailable")

    def is_x_user_id_used(self, fid):
        self._check()
        return str(fid) in self.used_fids

    def get_nonce(self, wallet):
        return self.nonce

    def balance_of(self, wallet):
        self._check()
        return self.balances.get(wallet.lower(), 0)

    def token_of_owner_by_index(self, wallet, index=0):
        self._check()
        return self.owned[wallet.lower()]

    def token_uri(self, token_id):
        self._check()
        return self.uris[token_id]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture(autouse=True)
def chain(monkeypatch):
    fake = FakeChain()
    for name in ("is_x_user_id_used", "get_nonce", "balance_of", "token_of_owner_by_index", "token_uri"):
        monkeypatch.setattr(contract, name, getattr(fake, name))
    return fake


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"x-admin-api-key": ADMIN_KEY}


def make_token(db, fid, **overrides):
    fields = {
        "x_user_id": str(fid),
        "seed": "a" * 64,
        "token_uri": f"ipfs://QmToken{fid}",
        "metadata_uri": f"ipfs://QmMeta{fid}",
        "image_uri": f"ipfs://QmImage{fid}",
        "traits": {},
    }
    fields.update(overrides)
    token = Token(**fields)
    db.add(token)
    db.commit()
    db.refresh(token)
    return token
