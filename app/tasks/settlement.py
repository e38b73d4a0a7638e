# app/tasks/settlement.py
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import (
    BIZ_PAYOUT, DIRECTION_IN, MARKET_RESULTED, MARKET_SETTLED, MATCH_RESULT_PENDING,
    TEAM_GAMES, WAGER_LOSS, WAGER_PENDING, WAGER_WIN,
)
from app.core.game_data import GameData, is_valid_result, load_game_data, parse_game_data, payout_for
from app.core.payout import GAME_TYPE_SATAMATKA
from app.core.timeutil import now_naive
from app.db.session import AsyncSessionLocal
from app.models.market import SatamatkaMarket
from app.models.team_match import TeamMatch
from app.models.user import User
from app.models.wager import Wager
from app.services.wallet_service import add_ledger

logger = logging.getLogger(__name__)

BATCH_LIMIT = 50      # 每轮最多处理 N 个市场 / 比赛


def _game_data(w: Wager) -> Optional[GameData]:
    """注单 -> 下注内容；赔率都取下单时的快照"""
    try:
        if w.game_type in TEAM_GAMES:
            return load_game_data({"kind": w.game_type, "pick": w.prediction,
                                   f"odd_{w.prediction}": w.odd_value})
        return parse_game_data(w.game_mode, w.prediction)
    except ValueError:
        logger.warning("wager %s has unparseable prediction %r (%s), settled as loss",
                       w.id, w.prediction, w.game_mode)
        return None


# ------------------------------
# 结算一笔注单
# ------------------------------
async def _settle_one_wager(session: AsyncSession, wager_id: int, result: str) -> Optional[dict]:
    """
    结算一笔注单。返回结算详情 dict（用于日志），未处理则返回 None。
    只处理 pending，重复调用不会重复派彩。
    """
    w = await session.get(Wager, wager_id, with_for_update=True)
    if not w or w.status != WAGER_PENDING:
        return None

    data = _game_data(w)
    # 和预览同一个公式
    payout = payout_for(data, w.stake_amount, result, {w.game_mode: w.odd_value}) if data else 0

    w.payout = payout
    w.status = WAGER_WIN if payout > 0 else WAGER_LOSS
    w.settled_at = now_naive()

    user = None
    if payout > 0:
        user = await session.get(User, w.user_id, with_for_update=True)
        if user is None:
            logger.error("wager %s: user %s missing, payout not credited", w.id, w.user_id)
        else:
            user.balance = int(user.balance or 0) + payout
            user.total_payout = int(user.total_payout or 0) + payout
            w.balance_after = user.balance
            add_ledger(session, user.id, DIRECTION_IN, payout, user.balance, BIZ_PAYOUT,
                       "wager", w.id, f"payout {w.game_mode} {w.prediction}")

    await session.flush()
    return {
        "wager_id": w.id,
        "user_id": w.user_id,
        "game_mode": w.game_mode,
        "prediction": w.prediction,
        "stake": w.stake_amount,
        "win": payout,
        "status": w.status,
    }


async def _settle_wagers(session: AsyncSession, pending, results: dict) -> dict:
    """pending: Wager 过滤条件；results: game_type -> 开奖结果（缺的跳过）"""
    summary = {"settled": 0, "winners": 0, "total_payout": 0}
    rows = (await session.execute(
        select(Wager.id, Wager.game_type).where(pending).order_by(Wager.id.asc())
    )).all()

    for wid, game_type in rows:
        result = results.get(game_type)
        if not result:
            continue
        details = await _settle_one_wager(session, wid, result)
        if not details:
            continue
        summary["settled"] += 1
        if details["win"] > 0:
            summary["winners"] += 1
            summary["total_payout"] += details["win"]
    return summary


async def _left(session: AsyncSession, pending) -> int:
    return await session.scalar(select(func.count(Wager.id)).where(pending)) or 0


# ------------------------------
# 结算一个市场
# ------------------------------
async def settle_market(session: AsyncSession, market_id: int) -> dict:
    """
    按 close_result 结算该市场所有 pending 注单，全部结算后市场置为 settled。
    调用方负责 commit。
    """
    market = await session.get(SatamatkaMarket, market_id, with_for_update=True)
    summary = {"market_id": market_id, "settled": 0, "winners": 0, "total_payout": 0,
               "market_status": market.status if market else ""}
    if market is None or market.status != MARKET_RESULTED or not is_valid_result(market.close_result):
        return summary

    pending = (Wager.market_id == market_id) & (Wager.status == WAGER_PENDING)
    summary.update(await _settle_wagers(session, pending, {GAME_TYPE_SATAMATKA: market.close_result}))

    if not await _left(session, pending):
        market.status = MARKET_SETTLED
    await session.flush()
    summary["market_status"] = market.status
    return summary


# ------------------------------
# 结算一场比赛
# ------------------------------
async def settle_match(session: AsyncSession, match_id: int) -> dict:
    """
    team_match 注单按 result 结算，cricket_toss 注单按 toss_result 结算，
    未公布的一方保持 pending。比赛 resulted 且没有 pending 注单后置为 settled。
    调用方负责 commit。
    """
    match = await session.get(TeamMatch, match_id, with_for_update=True)
    summary = {"match_id": match_id, "settled": 0, "winners": 0, "total_payout": 0,
               "match_status": match.status if match else ""}
    if match is None or match.status == MARKET_SETTLED:
        return summary

    results = {
        "team_match": match.result if match.status == MARKET_RESULTED else None,
        "cricket_toss": match.toss_result,
    }
    results = {k: v for k, v in results.items() if v and v != MATCH_RESULT_PENDING}
    if not results:
        return summary

    pending = (Wager.match_id == match_id) & (Wager.status == WAGER_PENDING)
    summary.update(await _settle_wagers(session, pending, results))

    if match.status == MARKET_RESULTED and not await _left(session, pending):
        match.status = MARKET_SETTLED
    await session.flush()
    summary["match_status"] = match.status
    return summary


# ------------------------------
# 一轮扫描（供 scheduler 调用）
# ------------------------------
async def _sweep(model, settle, label: str) -> int:
    async with AsyncSessionLocal() as session:
        rs = await session.execute(
            select(model.id)
            .where(model.status == MARKET_RESULTED)
            .order_by(model.id.asc())
            .limit(BATCH_LIMIT)
        )
        ids = rs.scalars().all()

    done = 0
    for oid in ids:
        try:
            async with AsyncSessionLocal() as s:
                async with s.begin():
                    summary = await settle(s, oid)
            done += 1
            if summary["settled"]:
                logger.warning(
                    "%s %s settled: %s wagers, %s winners, payout %s",
                    label, oid, summary["settled"], summary["winners"], summary["total_payout"],
                )
        except Exception as e:
            logger.exception("settle %s failed id=%s: %s", label, oid, e)
            # 不中断后续
            continue
    return done


async def settle_pending_once() -> int:
    """扫描 resulted 的市场和比赛逐个结算，一个一个事务；返回处理的个数"""
    done = await _sweep(SatamatkaMarket, settle_market, "market")
    done += await _sweep(TeamMatch, settle_match, "match")
    return done


async def settle_pending_job():
    try:
        await settle_pending_once()
    except Exception as e:
        logger.exception("settle_pending_job failed: %s", e)
