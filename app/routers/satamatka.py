from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN
from app.core.auth import get_current_user, require_role
from app.core.money import format_minor
from app.core.payout import multiplier_to_str
from app.db.session import get_session
from app.models.user import User
from app.schemas.satamatka import (
    MarketIn, MarketOut, MarketResultIn, PlayIn, PlayMultipleIn, PlayMultipleOut,
    PlayOut, PotentialWinIn, PotentialWinOut, SettlementOut, StatusIn, WagerOut,
)
from app.services.market_service import create_market, declare_result, list_markets, set_market_status
from app.services.wager_service import place_wagers, preview_potential_win, wager_history
from app.tasks.settlement import settle_market

router = APIRouter(prefix="/api/satamatka", tags=["satamatka"])

MAX_LIMIT = 100


@router.get("/markets", response_model=List[MarketOut])
async def markets(
        status: Optional[str] = None,
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
):
    return await list_markets(session, status, limit, offset)


@router.post("/markets", response_model=MarketOut, status_code=201)
async def add_market(
        payload: MarketIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    try:
        m = await create_market(session, payload)
        await session.commit()
        return m
    except Exception:
        await session.rollback(); raise


@router.patch("/markets/{market_id}/status", response_model=MarketOut)
async def market_status(
        market_id: int,
        payload: StatusIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    try:
        m = await set_market_status(session, market_id, payload.status)
        await session.commit()
        return m
    except Exception:
        await session.rollback(); raise


@router.post("/markets/{market_id}/result", response_model=SettlementOut)
async def market_result(
        market_id: int,
        payload: MarketResultIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    """
    录入开奖结果；带 close_result 时立即结算该市场。
    结算失败不影响结果录入，scheduler 会再扫。
    """
    try:
        m = await declare_result(session, market_id, payload.open_result, payload.close_result)
        await session.commit()
    except Exception:
        await session.rollback(); raise

    summary = {"market_id": m.id, "settled": 0, "winners": 0, "total_payout": 0, "market_status": m.status}
    if payload.close_result is not None:
        try:
            summary = await settle_market(session, market_id)
            await session.commit()
        except Exception:
            await session.rollback(); raise
    return SettlementOut(**summary)


@router.post("/potential-win", response_model=PotentialWinOut)
async def potential_win(
        payload: PotentialWinIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    """仅供展示，真实派彩以结算为准（同一公式）"""
    odd_value, win = await preview_potential_win(session, current_user, payload.game_mode, payload.stake_amount)
    return PotentialWinOut(
        game_mode=payload.game_mode,
        stake_amount=payload.stake_amount,
        odd_value=multiplier_to_str(odd_value),
        potential_win=win,
        potential_win_display=format_minor(win),
    )


@router.post("/play", response_model=PlayOut)
async def play(
        payload: PlayIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    try:
        wagers, balance = await place_wagers(
            session, current_user, payload.market_id, payload.game_mode.value,
            [(payload.prediction, payload.stake_amount)], payload.idempotency_key,
        )
        await session.commit()
        return PlayOut(
            wager=WagerOut.model_validate(wagers[0]),
            balance=balance,
            balance_display=format_minor(balance),
        )
    except Exception:
        await session.rollback(); raise


@router.post("/play-multiple", response_model=PlayMultipleOut)
async def play_multiple(
        payload: PlayMultipleIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    try:
        wagers, balance = await place_wagers(
            session, current_user, payload.market_id, payload.game_mode.value,
            [(b.prediction, b.stake_amount) for b in payload.bets],
        )
        await session.commit()
        return PlayMultipleOut(
            wagers=[WagerOut.model_validate(w) for w in wagers],
            total_amount=sum(w.stake_amount for w in wagers),
            balance=balance,
        )
    except Exception:
        await session.rollback(); raise


@router.get("/history", response_model=List[WagerOut])
async def history(
        market_id: Optional[int] = None,
        match_id: Optional[int] = None,
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    return await wager_history(session, current_user.id, limit, offset, market_id, match_id)
