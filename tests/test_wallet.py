from sqlalchemy import select

from app.constants import BIZ_DEPOSIT, BIZ_WITHDRAWAL
from app.models.user import User
from app.models.wallet import WalletLedger


async def new_request(client, user, auth, **kw):
    body = {"amount": 5000, "request_type": "deposit", "payment_mode": "upi", "payment_ref": "UTR1"}
    body.update(kw)
    r = await client.post("/api/wallet/requests", json=body, headers=auth(user))
    assert r.status_code == 201, r.text
    return r.json()


async def test_deposit_approval_credits_once(client, session_maker, admin, player, auth):
    req = await new_request(client, player, auth)
    assert req["status"] == "pending"

    r = await client.post(f"/api/wallet/requests/{req['id']}/review", json={"status": "approved"},
                          headers=auth(admin))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"
    assert r.json()["reviewed_by"] == admin.id

    r = await client.post(f"/api/wallet/requests/{req['id']}/review", json={"status": "approved"},
                          headers=auth(admin))
    assert r.status_code == 400

    async with session_maker() as s:
        assert (await s.get(User, player.id)).balance == 100000 + 5000
        ledger = (await s.execute(select(WalletLedger).where(WalletLedger.user_id == player.id))).scalars().all()
        assert [(l.biz_type, l.amount) for l in ledger] == [(BIZ_DEPOSIT, 5000)]


async def test_withdrawal(client, session_maker, admin, player, auth):
    r = await client.post("/api/wallet/requests", json={
        "amount": 200000, "request_type": "withdrawal", "payment_mode": "bank",
    }, headers=auth(player))
    assert r.status_code == 400

    req = await new_request(client, player, auth, amount=40000, request_type="withdrawal")
    r = await client.post(f"/api/wallet/requests/{req['id']}/review", json={"status": "approved"},
                          headers=auth(admin))
    assert r.status_code == 200

    async with session_maker() as s:
        assert (await s.get(User, player.id)).balance == 60000
        ledger = (await s.execute(select(WalletLedger.biz_type))).scalars().all()
        assert ledger == [BIZ_WITHDRAWAL]


async def test_reject_leaves_balance(client, session_maker, admin, player, auth):
    req = await new_request(client, player, auth)
    r = await client.post(f"/api/wallet/requests/{req['id']}/review",
                          json={"status": "rejected", "notes": "bad UTR"}, headers=auth(admin))
    assert r.json()["status"] == "rejected"
    assert r.json()["notes"] == "bad UTR"
    async with session_maker() as s:
        assert (await s.get(User, player.id)).balance == 100000


async def test_subadmin_reviews_own_players_with_commission(client, make_user, admin, subadmin, auth):
    await client.post(f"/api/commissions/subadmin/{subadmin.id}", json={"commissions": [
        {"game_type": "deposit", "commission_rate": "2"},
    ]}, headers=auth(admin))

    mine = await make_user(assigned_to=subadmin.id)
    stranger = await make_user()
    mine_req = await new_request(client, mine, auth, amount=10000)
    stranger_req = await new_request(client, stranger, auth)

    r = await client.post(f"/api/wallet/requests/{stranger_req['id']}/review", json={"status": "approved"},
                          headers=auth(subadmin))
    assert r.status_code == 403

    r = await client.post(f"/api/wallet/requests/{mine_req['id']}/review", json={"status": "approved"},
                          headers=auth(subadmin))
    assert r.status_code == 200
    assert r.json()["commission_amount"] == 200

    r = await client.get("/api/wallet/requests", headers=auth(subadmin))
    assert [x["id"] for x in r.json()] == [mine_req["id"]]


async def test_listing_filters(client, admin, player, auth):
    a = await new_request(client, player, auth)
    b = await new_request(client, player, auth, request_type="withdrawal", amount=100)
    await client.post(f"/api/wallet/requests/{a['id']}/review", json={"status": "rejected"}, headers=auth(admin))

    r = await client.get("/api/wallet/requests", params={"status": "pending"}, headers=auth(player))
    assert [x["id"] for x in r.json()] == [b["id"]]

    r = await client.get("/api/wallet/requests", params={"request_type": "deposit"}, headers=auth(admin))
    assert [x["id"] for x in r.json()] == [a["id"]]


async def test_player_cannot_review(client, player, auth):
    req = await new_request(client, player, auth)
    r = await client.post(f"/api/wallet/requests/{req['id']}/review", json={"status": "approved"},
                          headers=auth(player))
    assert r.status_code == 403


async def test_blocked_user_cannot_request(client, make_user, auth):
    blocked = await make_user(is_blocked=True)
    r = await client.post("/api/wallet/requests", json={
        "amount": 100, "request_type": "deposit", "payment_mode": "cash",
    }, headers=auth(blocked))
    assert r.status_code == 403
