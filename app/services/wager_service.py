import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import BIZ_BET, DIRECTION_OUT, WAGER_PENDING
from app.core.config import settings
from app.core.game_data import (
    DEFAULT_DRAW_ODDS, DRAW, TEAM_A, TEAM_B, CricketTossBet, load_game_data, parse_game_data,
)
from app.core.money import format_minor
from app.core.payout import GAME_TYPE_SATAMATKA, compute_commission, compute_payout, odds_key
from app.models.user import User
from app.models.wager import Wager
from app.services.commission_service import get_commission_rate
from app.services.market_service import get_open_market
from app.services.match_service import get_open_match
from app.services.odds_service import get_multiplier, load_odds_table
from app.services.wallet_service import add_ledger, lock_user, subadmin_of

logger = logging.getLogger(__name__)


def check_stake(stake_amount: int) -> None:
    if stake_amount < settings.BET_MIN_AMOUNT or stake_amount > settings.BET_MAX_AMOUNT:
        raise HTTPException(
            400,
            f"Bet amount must be between {format_minor(settings.BET_MIN_AMOUNT)} "
            f"and {format_minor(settings.BET_MAX_AMOUNT)}",
        )


def check_prediction(game_mode: str, prediction: str) -> str:
    try:
        parse_game_data(game_mode, prediction)
    except ValueError as e:
        raise HTTPException(400, "Invalid prediction for selected game mode") from e
    return prediction.strip().upper() if game_mode == "harf" else prediction.strip().lower()


async def preview_potential_win(session: AsyncSession, user: User, game_mode: str,
                                stake_amount: int) -> Tuple[int, int]:
    """下单前的“可赢金额”预览：与结算用同一个 compute_payout，返回 (赔率, 派彩)"""
    sub_id = await subadmin_of(session, user)
    table = await load_odds_table(session, GAME_TYPE_SATAMATKA, sub_id)
    mode = str(game_mode or "").strip().lower()
    odd_value = table.get(mode, 100)
    return odd_value, compute_payout(mode, stake_amount, table)


async def _existing_by_key(session: AsyncSession, user_id: int, key: Optional[str]) -> Optional[Wager]:
    if not key:
        return None
    return await session.scalar(
        select(Wager).where(Wager.user_id == user_id, Wager.idempotency_key == key)
    )


async def _insert_wagers(session: AsyncSession, user_id: int, wagers: List[Wager],
                         key: Optional[str]) -> Optional[Wager]:
    """
    写入注单。同一用户同一幂等键并发提交时，后到的一方撞唯一约束：
    回滚本次下单并返回先到的注单；正常写入返回 None。
    """
    session.add_all(wagers)
    try:
        await session.flush()  # 得到 wager.id
    except IntegrityError:
        if not key:
            raise
        await session.rollback()
        existed = await _existing_by_key(session, user_id, key)
        if existed is None:
            raise
        logger.info("duplicate idempotency key %r for user %s, wager %s", key, user_id, existed.id)
        return existed
    return None


async def _current_balance(session: AsyncSession, user_id: int) -> int:
    u = await session.get(User, user_id, populate_existing=True)
    return int(u.balance or 0) if u else 0


def _debit(session: AsyncSession, u: User, wagers: List[Wager], total: int, bal: int) -> None:
    for w in wagers:
        add_ledger(session, u.id, DIRECTION_OUT, w.stake_amount, w.balance_after, BIZ_BET,
                   "wager", w.id, f"bet {w.game_mode} {w.prediction}")
    u.balance = bal
    u.total_bet_amount = int(u.total_bet_amount or 0) + total


async def place_wagers(session: AsyncSession, user: User, market_id: int, game_mode: str,
                       bets: List[Tuple[str, int]], idempotency_key: Optional[str] = None) -> Tuple[List[Wager], int]:
    """
    下注：
      - 赔率以配置为准（下单时快照到 wager.odd_value，结算用同一个值）
      - 扣减 user.balance（行级锁），写资金流水
      - 带 idempotency_key 的重复提交直接返回已有注单，不重复扣款
    调用方负责 commit / rollback。
    """
    user_id = user.id
    existed = await _existing_by_key(session, user_id, idempotency_key)
    if existed:
        return [existed], int(user.balance or 0)

    if user.is_blocked:
        raise HTTPException(403, "Your account is blocked")

    mode = str(game_mode).strip().lower()
    normalized: List[Tuple[str, int]] = []
    for prediction, stake in bets:
        check_stake(stake)
        normalized.append((check_prediction(mode, prediction), stake))
    total = sum(stake for _, stake in normalized)

    market = await get_open_market(session, market_id)

    u = await lock_user(session, user_id)
    bal = int(u.balance or 0)
    if bal < total:
        raise HTTPException(400, "Insufficient balance")

    sub_id = await subadmin_of(session, u)
    table = await load_odds_table(session, GAME_TYPE_SATAMATKA, sub_id)
    odd_value = table[mode]
    rate = await get_commission_rate(session, sub_id, odds_key(GAME_TYPE_SATAMATKA, mode)) if sub_id else 0

    wagers: List[Wager] = []
    for i, (prediction, stake) in enumerate(normalized):
        bal -= stake
        wagers.append(Wager(
            user_id=user_id,
            market_id=market.id,
            game_type=GAME_TYPE_SATAMATKA,
            game_mode=mode,
            prediction=prediction,
            stake_amount=stake,
            odd_value=odd_value,
            commission_amount=compute_commission(stake, rate),
            status=WAGER_PENDING,
            payout=0,
            balance_after=bal,
            idempotency_key=idempotency_key if i == 0 else None,
        ))

    existed = await _insert_wagers(session, user_id, wagers, idempotency_key)
    if existed:
        return [existed], await _current_balance(session, user_id)

    _debit(session, u, wagers, total, bal)
    await session.flush()
    return wagers, bal


async def place_team_wager(session: AsyncSession, user: User, match_id: int, game_type: str,
                           prediction: str, stake_amount: int,
                           idempotency_key: Optional[str] = None) -> Tuple[Wager, int]:
    """
    球队类下注（team_match / cricket_toss）。
    team_match 按比赛自身的赔率；cricket_toss 按 cricket_toss 配置赔率（子管理员可覆盖）。
    """
    user_id = user.id
    existed = await _existing_by_key(session, user_id, idempotency_key)
    if existed:
        return existed, int(user.balance or 0)

    if user.is_blocked:
        raise HTTPException(403, "Your account is blocked")

    check_stake(stake_amount)
    try:
        data = load_game_data({"kind": game_type, "pick": str(prediction or "").strip().lower()})
    except ValueError as e:
        raise HTTPException(400, "Invalid prediction") from e

    match = await get_open_match(session, match_id)
    if isinstance(data, CricketTossBet) and match.category != "cricket":
        raise HTTPException(400, "Toss betting is only available for cricket matches")

    u = await lock_user(session, user_id)
    bal = int(u.balance or 0)
    if bal < stake_amount:
        raise HTTPException(400, "Insufficient balance")

    sub_id = await subadmin_of(session, u)
    if isinstance(data, CricketTossBet):
        odd_value = await get_multiplier(session, game_type, None, sub_id)
    else:
        odd_value = {
            TEAM_A: match.odd_team_a,
            TEAM_B: match.odd_team_b,
            DRAW: match.odd_draw if match.odd_draw is not None else DEFAULT_DRAW_ODDS,
        }[data.pick]
    rate = await get_commission_rate(session, sub_id, game_type) if sub_id else 0

    bal -= stake_amount
    w = Wager(
        user_id=user_id,
        match_id=match.id,
        game_type=game_type,
        game_mode=game_type,
        prediction=data.pick,
        stake_amount=stake_amount,
        odd_value=odd_value,
        commission_amount=compute_commission(stake_amount, rate),
        status=WAGER_PENDING,
        payout=0,
        balance_after=bal,
        idempotency_key=idempotency_key,
    )
    existed = await _insert_wagers(session, user_id, [w], idempotency_key)
    if existed:
        return existed, await _current_balance(session, user_id)

    _debit(session, u, [w], stake_amount, bal)
    await session.flush()
    return w, bal


async def wager_history(session: AsyncSession, user_id: int, limit: int = 20, offset: int = 0,
                        market_id: Optional[int] = None, match_id: Optional[int] = None) -> List[Wager]:
    stmt = select(Wager).where(Wager.user_id == user_id)
    if market_id:
        stmt = stmt.where(Wager.market_id == market_id)
    if match_id:
        stmt = stmt.where(Wager.match_id == match_id)
    stmt = stmt.order_by(Wager.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def match_wagers(session: AsyncSession, match_id: int,
                       subadmin_id: Optional[int] = None) -> List[Wager]:
    """比赛下的注单；传 subadmin_id 时只看其名下玩家"""
    stmt = select(Wager).where(Wager.match_id == match_id)
    if subadmin_id:
        stmt = stmt.where(Wager.user_id.in_(select(User.id).where(User.assigned_to == subadmin_id)))
    return list((await session.execute(stmt.order_by(Wager.id.asc()))).scalars().all())
