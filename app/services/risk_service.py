# app/services/risk_service.py
"""
风控视图：按市场（比赛）× 玩法汇总未结算注单

potential_liability 为全部 pending 注单按下单赔率快照中奖时的派彩之和，
子管理员只看到名下玩家。
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_SUBADMIN, WAGER_PENDING
from app.core.config import settings
from app.core.money import format_minor
from app.core.payout import apply_odds
from app.models.market import SatamatkaMarket
from app.models.team_match import TeamMatch
from app.models.user import User
from app.models.wager import Wager

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"


def risk_level(liability: int) -> str:
    if liability > settings.RISK_HIGH_LIABILITY:
        return RISK_HIGH
    if liability > settings.RISK_MEDIUM_LIABILITY:
        return RISK_MEDIUM
    return RISK_LOW


def _summarize(rows) -> List[dict]:
    """rows: (分组 key, 名称, Wager, username)，key 为 (id 字段, id, game_mode)"""
    groups: Dict[Tuple, dict] = {}
    for key, name, w, username in rows:
        id_field, oid, mode = key
        g = groups.get(key)
        if g is None:
            g = groups[key] = {
                id_field: oid, "name": name, "game_mode": mode,
                "total_bets": 0, "total_amount": 0, "highest_bet": 0,
                "potential_liability": 0, "_players": {},
            }
        win = apply_odds(w.stake_amount, w.odd_value)
        g["total_bets"] += 1
        g["total_amount"] += w.stake_amount
        g["highest_bet"] = max(g["highest_bet"], w.stake_amount)
        g["potential_liability"] += win

        p = g["_players"].setdefault(w.user_id, {
            "user_id": w.user_id, "username": username, "bets": 0, "bet_amount": 0, "potential_win": 0,
        })
        p["bets"] += 1
        p["bet_amount"] += w.stake_amount
        p["potential_win"] += win

    out = []
    for g in groups.values():
        players = sorted(g.pop("_players").values(), key=lambda p: p["potential_win"], reverse=True)
        g["players"] = players
        g["player_count"] = len(players)
        g["risk_level"] = risk_level(g["potential_liability"])
        g["potential_liability_display"] = format_minor(g["potential_liability"])
        out.append(g)
    # 风险最大的排前面
    out.sort(key=lambda g: g["potential_liability"], reverse=True)
    return out


def _scoped(stmt, viewer: User):
    stmt = stmt.join(User, User.id == Wager.user_id).where(Wager.status == WAGER_PENDING)
    if viewer.role == ROLE_SUBADMIN:
        stmt = stmt.where(User.assigned_to == viewer.id)
    return stmt


async def satamatka_risk(session: AsyncSession, viewer: User, market_id: Optional[int] = None) -> List[dict]:
    stmt = _scoped(
        select(Wager, User.username, SatamatkaMarket.name)
        .join(SatamatkaMarket, SatamatkaMarket.id == Wager.market_id),
        viewer,
    )
    if market_id:
        stmt = stmt.where(Wager.market_id == market_id)
    rs = await session.execute(stmt.order_by(Wager.id.asc()))
    return _summarize(
        (("market_id", w.market_id, w.game_mode), name, w, username) for w, username, name in rs.all()
    )


async def team_match_risk(session: AsyncSession, viewer: User, match_id: Optional[int] = None) -> List[dict]:
    stmt = _scoped(
        select(Wager, User.username, TeamMatch.team_a, TeamMatch.team_b)
        .join(TeamMatch, TeamMatch.id == Wager.match_id),
        viewer,
    )
    if match_id:
        stmt = stmt.where(Wager.match_id == match_id)
    rs = await session.execute(stmt.order_by(Wager.id.asc()))
    return _summarize(
        (("match_id", w.match_id, w.game_mode), f"{a} vs {b}", w, username) for w, username, a, b in rs.all()
    )
