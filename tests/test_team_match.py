from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.constants import MARKET_CLOSED, MARKET_RESULTED, MARKET_SETTLED, WAGER_LOSS, WAGER_PENDING, WAGER_WIN
from app.core.timeutil import now_naive
from app.models.team_match import TeamMatch
from app.models.user import User
from app.services.match_service import declare_match_result, refresh_match_status
from app.services.odds_service import upsert_game_odd
from app.services.wager_service import place_team_wager
from app.tasks import settlement
from app.tasks.settlement import settle_match, settle_pending_once


async def close(session, match):
    match.status = MARKET_CLOSED
    await session.commit()


async def declare(session, match, result=None, toss_result=None):
    await declare_match_result(session, match.id, result, toss_result)
    await session.commit()
    summary = await settle_match(session, match.id)
    await session.commit()
    return summary


async def test_team_match_uses_match_odds(session, make_user, match):
    a = await make_user(balance=10000)
    b = await make_user(balance=10000)
    wa, bal = await place_team_wager(session, a, match.id, "team_match", "team_a", 1000)
    wb, _ = await place_team_wager(session, b, match.id, "team_match", "team_b", 500)
    await session.commit()
    assert (wa.odd_value, wb.odd_value) == (160, 240)
    assert wa.market_id is None and wa.match_id == match.id
    assert bal == 9000

    await close(session, match)
    summary = await declare(session, match, "team_a")

    assert summary == {"match_id": match.id, "settled": 2, "winners": 1,
                       "total_payout": 1600, "match_status": MARKET_SETTLED}
    assert (wa.status, wa.payout) == (WAGER_WIN, 1600)
    assert (wb.status, wb.payout) == (WAGER_LOSS, 0)
    assert (await session.get(User, a.id)).balance == 9000 + 1600


async def test_draw_without_draw_odds_pays_three_times(session, player, match):
    w, _ = await place_team_wager(session, player, match.id, "team_match", "draw", 1000)
    await session.commit()
    assert w.odd_value == 300

    await close(session, match)
    await declare(session, match, "draw")
    assert w.payout == 3000


async def test_toss_settles_on_toss_result(session, player, match):
    await upsert_game_odd(session, "cricket_toss", 185, True)
    await session.commit()

    toss, _ = await place_team_wager(session, player, match.id, "cricket_toss", "team_b", 1000)
    team, _ = await place_team_wager(session, player, match.id, "team_match", "team_b", 1000)
    await session.commit()
    assert toss.odd_value == 185

    await close(session, match)
    summary = await declare(session, match, toss_result="team_b")

    # 比赛结果还没出，只结算掷币
    assert summary["settled"] == 1
    assert summary["match_status"] == MARKET_CLOSED
    assert (toss.status, toss.payout) == (WAGER_WIN, 1850)
    assert team.status == WAGER_PENDING

    summary = await declare(session, match, "team_a")
    assert summary["settled"] == 1
    assert summary["match_status"] == MARKET_SETTLED
    assert team.status == WAGER_LOSS
    assert toss.payout == 1850


async def test_toss_result_cannot_change(session, match):
    await close(session, match)
    await declare_match_result(session, match.id, None, "team_a")
    await session.commit()
    with pytest.raises(HTTPException) as e:
        await declare_match_result(session, match.id, None, "team_b")
    assert e.value.status_code == 400


async def test_toss_only_for_cricket(session, player, make_match):
    football = await make_match(category="football")
    with pytest.raises(HTTPException) as e:
        await place_team_wager(session, player, football.id, "cricket_toss", "team_a", 100)
    assert e.value.status_code == 400


async def test_team_wager_rejections(session, make_user, match, make_match):
    player = await make_user(balance=10000)
    started = await make_match(starts_in=timedelta(minutes=-5))
    with pytest.raises(HTTPException) as e:
        await place_team_wager(session, player, started.id, "team_match", "team_a", 100)
    assert e.value.detail == "Match has already started"

    with pytest.raises(HTTPException) as e:
        await place_team_wager(session, player, match.id, "cricket_toss", "draw", 100)
    assert e.value.detail == "Invalid prediction"

    with pytest.raises(HTTPException) as e:
        await place_team_wager(session, player, match.id, "team_match", "team_a", 10001)
    assert e.value.status_code == 400

    poor = await make_user(balance=50)
    with pytest.raises(HTTPException) as e:
        await place_team_wager(session, poor, match.id, "team_match", "team_a", 100)
    assert e.value.detail == "Insufficient balance"


async def test_result_rejected_before_match_starts(session, match):
    with pytest.raises(HTTPException) as e:
        await declare_match_result(session, match.id, "team_a")
    assert e.value.detail == "Match is still open for betting"


async def test_team_wager_idempotency_key(session, player, match):
    a, _ = await place_team_wager(session, player, match.id, "team_match", "team_a", 100, "t-1")
    await session.commit()
    b, bal = await place_team_wager(session, player, match.id, "team_match", "team_a", 100, "t-1")
    assert a.id == b.id
    assert bal == 100000 - 100


async def test_refresh_closes_started_matches(session, make_match):
    started = await make_match(starts_in=timedelta(minutes=-1))
    later = await make_match()
    assert await refresh_match_status(session) == 1
    await session.commit()
    await session.refresh(started)
    await session.refresh(later)
    assert started.status == MARKET_CLOSED
    assert later.status == "open"


async def test_sweep_settles_resulted_matches(session, session_maker, player, match, monkeypatch):
    monkeypatch.setattr(settlement, "AsyncSessionLocal", session_maker)
    await place_team_wager(session, player, match.id, "team_match", "team_b", 1000)
    await session.commit()
    await close(session, match)
    await declare_match_result(session, match.id, "team_b")
    await session.commit()
    assert match.status == MARKET_RESULTED

    assert await settle_pending_once() == 1

    async with session_maker() as s:
        assert (await s.get(TeamMatch, match.id)).status == MARKET_SETTLED
        assert (await s.get(User, player.id)).balance == 100000 - 1000 + 2400


async def test_api_match_flow(client, session_maker, admin, subadmin, make_user, auth):
    body = {"team_a": "India", "team_b": "Pakistan",
            "match_time": (now_naive() + timedelta(hours=3)).isoformat()}
    r = await client.post("/api/team-matches", json=body, headers=auth(admin))
    assert r.status_code == 201, r.text
    m = r.json()
    # 未给赔率时取 team_match 配置（默认 2.00×）
    assert (m["odd_team_a"], m["odd_team_b"], m["status"]) == (200, 200, "open")

    mine = await make_user(balance=10000, assigned_to=subadmin.id)
    other = await make_user(balance=10000)
    r = await client.post(f"/api/team-matches/{m['id']}/play",
                          json={"prediction": "team_a", "stake_amount": 1000}, headers=auth(mine))
    assert r.status_code == 200, r.text
    assert r.json()["balance"] == 9000
    r = await client.post(f"/api/team-matches/{m['id']}/play-toss",
                          json={"prediction": "team_b", "stake_amount": 500}, headers=auth(other))
    assert r.json()["wager"]["odd_value"] == 190

    r = await client.get(f"/api/team-matches/{m['id']}/wagers", headers=auth(subadmin))
    assert [w["user_id"] for w in r.json()["wagers"]] == [mine.id]
    r = await client.get(f"/api/team-matches/{m['id']}/wagers", headers=auth(admin))
    assert len(r.json()["wagers"]) == 2
    r = await client.get(f"/api/team-matches/{m['id']}/wagers", headers=auth(mine))
    assert r.status_code == 403

    r = await client.post(f"/api/team-matches/{m['id']}/result",
                          json={"result": "team_a"}, headers=auth(admin))
    assert r.status_code == 400

    r = await client.patch(f"/api/team-matches/{m['id']}/status",
                           json={"status": "closed"}, headers=auth(admin))
    assert r.json()["status"] == "closed"
    r = await client.post(f"/api/team-matches/{m['id']}/result",
                          json={"result": "team_a", "toss_result": "team_a"}, headers=auth(admin))
    assert r.json() == {"match_id": m["id"], "settled": 2, "winners": 1,
                        "total_payout": 2000, "match_status": "settled"}

    r = await client.get("/api/satamatka/history", params={"match_id": m["id"]}, headers=auth(mine))
    assert r.json()[0]["profit_loss"] == "+10.00"
    r = await client.get("/api/satamatka/history", params={"match_id": m["id"]}, headers=auth(other))
    assert r.json()[0]["profit_loss"] == "-5.00"

    r = await client.get("/api/team-matches", params={"status": "settled", "category": "cricket"})
    assert [x["id"] for x in r.json()] == [m["id"]]
