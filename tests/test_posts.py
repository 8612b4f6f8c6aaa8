from datetime import date, datetime, timedelta

from app.models.chat_token import ChatToken
from app.models.post import Post, PostFav, WeeklyReward
from app.models.user import User
from app.routers.posts import current_week
from app.services import chat_tokens
from conftest import OTHER_WALLET, WALLET, make_token

THIRD_WALLET = "0x3333333333333333333333333333333333333333"


def _create(client, content="gm xfrora", wallet=WALLET):
    return client.post("/api/posts/create", json={"walletAddress": wallet, "content": content})


def test_current_week_is_monday_to_sunday():
    assert current_week(date(2026, 10, 15)) == (date(2026, 10, 12), date(2026, 10, 18))
    assert current_week(date(2026, 10, 12)) == (date(2026, 10, 12), date(2026, 10, 18))
    assert current_week(date(2026, 10, 18)) == (date(2026, 10, 12), date(2026, 10, 18))


def test_create_post_burns_tokens(client, db):
    chat_tokens.update_token_balance(db, WALLET, 25_000, new_points=2)

    response = _create(client, content="  gm xfrora  ")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["newBalance"] == 5_000
    assert body["newPoints"] == 10
    assert body["tokensBurned"] == 20_000
    assert body["pointsEarned"] == 8
    assert body["post"]["content"] == "gm xfrora"
    assert body["post"]["fav_count"] == 0

    db.expire_all()
    record = db.query(ChatToken).filter(ChatToken.wallet_address == WALLET.lower()).one()
    assert record.total_tokens_spent == 20_000


def test_create_post_insufficient_balance(client, db):
    chat_tokens.update_token_balance(db, WALLET, 19_999)

    response = _create(client)

    assert response.status_code == 402
    assert response.json() == {"error": "Insufficient token balance", "required": 20_000, "current": 19_999}
    db.expire_all()
    assert db.query(Post).count() == 0


def test_create_post_validation(client):
    assert _create(client, content="x" * 281).status_code == 400
    assert _create(client, content="   ").status_code == 400
    assert _create(client, content="").status_code == 400
    assert _create(client, wallet="0xnothex").status_code == 400


def test_create_post_token_id_from_contract(client, db, chain):
    chat_tokens.update_token_balance(db, WALLET, 20_000)
    chain.balances[WALLET.lower()] = 1
    chain.owned[WALLET.lower()] = 77

    assert _create(client).json()["post"]["nft_token_id"] == 77


def test_create_post_token_id_from_database(client, db, chain):
    chat_tokens.update_token_balance(db, WALLET, 20_000)
    chain.rpc_down = True
    db.add(User(x_user_id="55", username="frora", wallet_address=WALLET.lower()))
    db.commit()
    make_token(db, 55, token_id=12)

    assert _create(client).json()["post"]["nft_token_id"] == 12


def test_create_post_token_id_fallback(client, db):
    chat_tokens.update_token_balance(db, WALLET, 20_000)
    assert _create(client).json()["post"]["nft_token_id"] == 1


def test_list_posts_newest_first(client, db):
    now = datetime.utcnow()
    db.add_all([
        Post(wallet_address=WALLET.lower(), nft_token_id=1, content="older", created_at=now - timedelta(hours=2)),
        Post(wallet_address=WALLET.lower(), nft_token_id=1, content="newer", created_at=now),
    ])
    db.commit()

    body = client.get("/api/posts").json()

    assert body["total"] == 2
    assert [p["content"] for p in body["posts"]] == ["newer", "older"]


def test_distribute_requires_admin(client):
    assert client.post("/api/posts/distribute-weekly-rewards").status_code == 401
    response = client.post("/api/posts/distribute-weekly-rewards", headers={"x-admin-api-key": "wrong"})
    assert response.status_code == 401


def test_distribute_weekly_rewards(client, db, admin_headers):
    now = datetime.utcnow()
    popular = Post(wallet_address=WALLET.lower(), nft_token_id=1, content="popular", fav_count=2, created_at=now)
    quiet = Post(wallet_address=OTHER_WALLET.lower(), nft_token_id=2, content="quiet", fav_count=1, created_at=now)
    stale = Post(
        wallet_address=OTHER_WALLET.lower(),
        nft_token_id=2,
        content="stale",
        fav_count=0,
        created_at=now - timedelta(days=20),
    )
    db.add_all([popular, quiet, stale])
    db.commit()
    db.add_all([
        PostFav(post_id=popular.id, wallet_address=THIRD_WALLET, nft_token_id=3),
        PostFav(post_id=quiet.id, wallet_address=THIRD_WALLET, nft_token_id=3),
        PostFav(post_id=popular.id, wallet_address=OTHER_WALLET.lower(), nft_token_id=2),
        PostFav(post_id=stale.id, wallet_address=WALLET.lower(), nft_token_id=1),
    ])
    db.commit()

    response = client.post("/api/posts/distribute-weekly-rewards", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    start, end = current_week()
    assert body["week"] == {"start": start.isoformat(), "end": end.isoformat()}
    assert [r["type"] for r in body["rewards"]] == ["most_favd_post", "most_favs_given"]
    assert body["rewards"][0]["winner_post_id"] == popular.id
    assert body["rewards"][1]["favs_given"] == 2
    assert body["cleanup"]["deleted_posts"] == 1

    db.expire_all()
    assert chat_tokens.get_record(db, WALLET).balance == 1_000_000
    assert chat_tokens.get_record(db, THIRD_WALLET).balance == 1_000_000
    assert db.query(WeeklyReward).count() == 2
    assert db.query(Post).filter(Post.content == "stale").count() == 0
    assert db.query(PostFav).count() == 3

    winners = client.get("/api/posts/weekly-winners").json()["winners"]
    assert {w["reward_type"] for w in winners} == {"most_favd_post", "most_favs_given"}


def test_distribute_with_no_activity(client, admin_headers):
    body = client.post("/api/posts/distribute-weekly-rewards", headers=admin_headers).json()
    assert body["success"] is True
    assert body["rewards"] == []
