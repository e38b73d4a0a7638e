import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import (
    MARKET_CLOSED, MARKET_OPEN, MARKET_RESULTED, MARKET_SETTLED,
    MATCH_RESULT_PENDING, MATCH_RESULTS, TOSS_RESULTS,
)
from app.core.timeutil import now_naive, to_naive
from app.models.team_match import TeamMatch
from app.schemas.team_match import MatchIn
from app.services.odds_service import get_multiplier

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    MARKET_CLOSED: "Match is closed for betting",
    MARKET_RESULTED: "Match results have been declared",
    MARKET_SETTLED: "Match has been settled",
}


async def create_match(session: AsyncSession, data: MatchIn) -> TeamMatch:
    default_odd = await get_multiplier(session, "team_match")
    m = TeamMatch(
        team_a=data.team_a,
        team_b=data.team_b,
        category=data.category,
        description=data.description,
        match_time=to_naive(data.match_time),
        odd_team_a=data.odd_team_a if data.odd_team_a is not None else default_odd,
        odd_team_b=data.odd_team_b if data.odd_team_b is not None else default_odd,
        odd_draw=data.odd_draw,
        status=MARKET_OPEN,
    )
    session.add(m)
    await session.flush()
    return m


async def list_matches(session: AsyncSession, status: Optional[str] = None, category: Optional[str] = None,
                       limit: int = 20, offset: int = 0) -> List[TeamMatch]:
    stmt = select(TeamMatch)
    if status:
        stmt = stmt.where(TeamMatch.status == status)
    if category:
        stmt = stmt.where(TeamMatch.category == category)
    stmt = stmt.order_by(TeamMatch.match_time.desc(), TeamMatch.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def get_match(session: AsyncSession, match_id: int, for_update: bool = False) -> TeamMatch:
    m = await session.get(TeamMatch, match_id, with_for_update=for_update)
    if m is None:
        raise HTTPException(404, "Match not found")
    return m


async def get_open_match(session: AsyncSession, match_id: int) -> TeamMatch:
    """可下注：状态 open 且比赛未开始"""
    m = await get_match(session, match_id)
    if m.status != MARKET_OPEN:
        raise HTTPException(400, STATUS_MESSAGES.get(m.status, "Match is not available for betting"))
    if now_naive() >= m.match_time:
        raise HTTPException(400, "Match has already started")
    return m


async def set_match_status(session: AsyncSession, match_id: int, status: str) -> TeamMatch:
    if status not in (MARKET_OPEN, MARKET_CLOSED):
        raise HTTPException(400, "Invalid status")
    m = await get_match(session, match_id, for_update=True)
    if m.status in (MARKET_RESULTED, MARKET_SETTLED):
        raise HTTPException(400, STATUS_MESSAGES[m.status])
    m.status = status
    await session.flush()
    return m


async def declare_match_result(session: AsyncSession, match_id: int, result: Optional[str] = None,
                               toss_result: Optional[str] = None) -> TeamMatch:
    """
    录入比赛结果 / 掷币结果，由调用方触发结算。
    result 是最终结果：写入后比赛进入 resulted。
    """
    if result is None and toss_result is None:
        raise HTTPException(400, "result or toss_result is required")
    if result is not None and result not in MATCH_RESULTS:
        raise HTTPException(400, "Invalid result")
    if toss_result is not None and toss_result not in TOSS_RESULTS:
        raise HTTPException(400, "Invalid toss result")
    m = await get_match(session, match_id, for_update=True)
    if m.status == MARKET_SETTLED:
        raise HTTPException(400, STATUS_MESSAGES[MARKET_SETTLED])
    if m.status == MARKET_OPEN and now_naive() < m.match_time:
        raise HTTPException(400, "Match is still open for betting")
    if toss_result is not None:
        if m.toss_result not in (MATCH_RESULT_PENDING, toss_result):
            raise HTTPException(400, "Toss result already declared")
        m.toss_result = toss_result
    if result is not None:
        m.result = result
        m.status = MARKET_RESULTED
    await session.flush()
    logger.info("match %s result declared: result=%s toss=%s", m.id, m.result, m.toss_result)
    return m


async def refresh_match_status(session: AsyncSession) -> int:
    """open→closed（过比赛时间），返回变更条数"""
    rs = await session.execute(
        update(TeamMatch)
        .where(TeamMatch.status == MARKET_OPEN, TeamMatch.match_time <= now_naive())
        .values(status=MARKET_CLOSED)
    )
    return rs.rowcount or 0
