from datetime import datetime, timedelta

from app.core.config import settings
from app.models.kv import KVEntry
from app.services import rate_limit
from conftest import WALLET


def test_fixed_window(db):
    key = rate_limit.mint_key(WALLET)
    for _ in range(3):
        assert rate_limit.check_rate_limit(db, key, limit=3, window_seconds=60)
    assert not rate_limit.check_rate_limit(db, key, limit=3, window_seconds=60)
    assert rate_limit.get_count(db, key) == 3


def test_expired_window_resets(db):
    key = rate_limit.mint_key(WALLET)
    db.add(KVEntry(key=key, value="10", expires_at=datetime.utcnow() - timedelta(seconds=1)))
    db.commit()

    assert rate_limit.get_count(db, key) == 0
    assert rate_limit.check_mint_rate_limit(db, WALLET)
    assert rate_limit.get_count(db, key) == 1


def test_mint_key_is_case_insensitive():
    assert rate_limit.mint_key("0xABCdef") == "rate_limit:mint:0xabcdef"


def test_check_and_clear(client, db, admin_headers):
    for _ in range(4):
        rate_limit.check_mint_rate_limit(db, WALLET)

    check = client.post(
        "/api/admin/clear-mint-rate-limit",
        json={"wallet": WALLET, "action": "check"},
        headers=admin_headers,
    ).json()
    assert check == {
        "wallet": WALLET.lower(),
        "mintRateLimitKey": f"rate_limit:mint:{WALLET.lower()}",
        "currentCount": 4,
        "limit": 10,
        "window": "1 hour",
    }

    cleared = client.post(
        "/api/admin/clear-mint-rate-limit",
        json={"wallet": WALLET, "action": "clear"},
        headers=admin_headers,
    ).json()
    assert cleared["success"] is True
    assert cleared["clearedKeys"] == [f"rate_limit:mint:{WALLET.lower()}"]

    db.expire_all()
    assert rate_limit.get_count(db, rate_limit.mint_key(WALLET)) == 0


def test_bad_requests(client, admin_headers):
    url = "/api/admin/clear-mint-rate-limit"
    assert client.post(url, json={"action": "check"}, headers=admin_headers).status_code == 400
    assert client.post(url, json={"wallet": WALLET, "action": "reset"}, headers=admin_headers).status_code == 400
    assert client.post(url, json={"wallet": WALLET}, headers=admin_headers).status_code == 400


def test_admin_key_required(client, monkeypatch):
    url = "/api/admin/clear-mint-rate-limit"
    response = client.post(url, json={"wallet": WALLET, "action": "check"})
    assert response.status_code == 401
    assert "x-admin-api-key" in response.json()["error"]

    monkeypatch.setattr(settings, "ADMIN_API_KEY", "")
    response = client.post(url, json={"wallet": WALLET, "action": "check"}, headers={"x-admin-api-key": "x"})
    assert response.status_code == 500
    assert response.json() == {"error": "Admin API key not configured"}


def test_root(client):
    assert client.get("/").json() == {"message": "xFrora backend running 🚀"}
