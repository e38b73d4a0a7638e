from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN, ROLE_SUBADMIN
from app.core.auth import get_current_user, require_role
from app.core.money import format_minor
from app.db.session import get_session
from app.models.user import User
from app.schemas.satamatka import PlayOut, WagerOut
from app.schemas.team_match import (
    MatchIn, MatchOut, MatchResultIn, MatchSettlementOut, MatchStatusIn, MatchWagersOut,
    TeamPlayIn, TossPlayIn,
)
from app.services.match_service import (
    create_match, declare_match_result, get_match, list_matches, set_match_status,
)
from app.services.wager_service import match_wagers, place_team_wager
from app.tasks.settlement import settle_match

router = APIRouter(prefix="/api/team-matches", tags=["team-matches"])

MAX_LIMIT = 100


@router.get("", response_model=List[MatchOut])
async def matches(
        status: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = Query(20, ge=1, le=MAX_LIMIT),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
):
    return await list_matches(session, status, category, limit, offset)


@router.get("/{match_id}", response_model=MatchOut)
async def match_detail(match_id: int, session: AsyncSession = Depends(get_session)):
    return await get_match(session, match_id)


@router.post("", response_model=MatchOut, status_code=201)
async def add_match(
        payload: MatchIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    try:
        m = await create_match(session, payload)
        await session.commit()
        return m
    except Exception:
        await session.rollback(); raise


@router.patch("/{match_id}/status", response_model=MatchOut)
async def match_status(
        match_id: int,
        payload: MatchStatusIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    try:
        m = await set_match_status(session, match_id, payload.status)
        await session.commit()
        return m
    except Exception:
        await session.rollback(); raise


@router.post("/{match_id}/result", response_model=MatchSettlementOut)
async def match_result(
        match_id: int,
        payload: MatchResultIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(require_role(ROLE_ADMIN)),
):
    """录入结果并立即结算；结算失败由 scheduler 再扫"""
    try:
        await declare_match_result(session, match_id, payload.result, payload.toss_result)
        await session.commit()
    except Exception:
        await session.rollback(); raise

    try:
        summary = await settle_match(session, match_id)
        await session.commit()
    except Exception:
        await session.rollback(); raise
    return MatchSettlementOut(**summary)


async def _play(session: AsyncSession, user: User, match_id: int, game_type: str,
                prediction: str, stake_amount: int, key: Optional[str]) -> PlayOut:
    try:
        w, balance = await place_team_wager(session, user, match_id, game_type, prediction, stake_amount, key)
        await session.commit()
        return PlayOut(
            wager=WagerOut.model_validate(w),
            balance=balance,
            balance_display=format_minor(balance),
        )
    except Exception:
        await session.rollback(); raise


@router.post("/{match_id}/play", response_model=PlayOut)
async def play(
        match_id: int,
        payload: TeamPlayIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    return await _play(session, current_user, match_id, "team_match",
                       payload.prediction, payload.stake_amount, payload.idempotency_key)


@router.post("/{match_id}/play-toss", response_model=PlayOut)
async def play_toss(
        match_id: int,
        payload: TossPlayIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    return await _play(session, current_user, match_id, "cricket_toss",
                       payload.prediction, payload.stake_amount, payload.idempotency_key)


@router.get("/{match_id}/wagers", response_model=MatchWagersOut)
async def wagers(
        match_id: int,
        session: AsyncSession = Depends(get_session),
        staff: User = Depends(require_role(ROLE_ADMIN, ROLE_SUBADMIN)),
):
    """管理员看全部；子管理员只看名下玩家"""
    m = await get_match(session, match_id)
    sub_id = staff.id if staff.role == ROLE_SUBADMIN else None
    rows = await match_wagers(session, match_id, sub_id)
    return MatchWagersOut(match=MatchOut.model_validate(m), wagers=[WagerOut.model_validate(w) for w in rows])
