import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import (
    MARKET_CLOSED, MARKET_OPEN, MARKET_RESULTED, MARKET_SETTLED, MARKET_WAITING,
)
from app.core.timeutil import now_naive, to_naive
from app.models.market import SatamatkaMarket
from app.schemas.satamatka import MarketIn

logger = logging.getLogger(__name__)

# 面向玩家的状态提示
STATUS_MESSAGES = {
    MARKET_WAITING: "Market is not yet active for betting",
    MARKET_CLOSED: "Market is closed for betting and waiting for results",
    MARKET_RESULTED: "Market results have been declared",
    MARKET_SETTLED: "Market has been settled",
}


async def create_market(session: AsyncSession, data: MarketIn) -> SatamatkaMarket:
    open_time = to_naive(data.open_time)
    close_time = to_naive(data.close_time)
    if close_time <= open_time:
        raise HTTPException(400, "close_time must be after open_time")
    m = SatamatkaMarket(
        name=data.name,
        type=data.type,
        open_time=open_time,
        close_time=close_time,
        result_time=to_naive(data.result_time) if data.result_time else None,
        status=data.status,
    )
    session.add(m)
    await session.flush()
    return m


async def list_markets(session: AsyncSession, status: Optional[str] = None,
                       limit: int = 20, offset: int = 0) -> List[SatamatkaMarket]:
    stmt = select(SatamatkaMarket)
    if status:
        stmt = stmt.where(SatamatkaMarket.status == status)
    stmt = stmt.order_by(SatamatkaMarket.open_time.desc(), SatamatkaMarket.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def get_market(session: AsyncSession, market_id: int, for_update: bool = False) -> SatamatkaMarket:
    m = await session.get(SatamatkaMarket, market_id, with_for_update=for_update)
    if m is None:
        raise HTTPException(404, "Market not found")
    return m


async def get_open_market(session: AsyncSession, market_id: int) -> SatamatkaMarket:
    """可下注：状态 open 且未到封盘时间"""
    m = await get_market(session, market_id)
    if m.status != MARKET_OPEN:
        raise HTTPException(400, STATUS_MESSAGES.get(m.status, "Market is not available for betting"))
    if now_naive() >= m.close_time:
        raise HTTPException(400, STATUS_MESSAGES[MARKET_CLOSED])
    return m


async def declare_result(session: AsyncSession, market_id: int, open_result: Optional[str],
                         close_result: Optional[str]) -> SatamatkaMarket:
    """
    录入开奖号码。close_result 是最终结果：写入后市场进入 resulted，
    由调用方触发结算。已结算市场不允许修改。
    """
    if open_result is None and close_result is None:
        raise HTTPException(400, "open_result or close_result is required")
    m = await get_market(session, market_id, for_update=True)
    if m.status == MARKET_SETTLED:
        raise HTTPException(400, STATUS_MESSAGES[MARKET_SETTLED])
    # 最终结果只能在封盘后录入，否则封盘前还能下注
    if close_result is not None and m.status in (MARKET_WAITING, MARKET_OPEN) and now_naive() < m.close_time:
        raise HTTPException(400, "Market is still open for betting")
    if open_result is not None:
        m.open_result = open_result
    if close_result is not None:
        m.close_result = close_result
        m.status = MARKET_RESULTED
        m.result_time = m.result_time or now_naive()
    await session.flush()
    logger.info("market %s result declared: open=%s close=%s", m.id, m.open_result, m.close_result)
    return m


MANUAL_STATUSES = (MARKET_WAITING, MARKET_OPEN, MARKET_CLOSED)


async def set_market_status(session: AsyncSession, market_id: int, status: str) -> SatamatkaMarket:
    """管理员手动开/封盘；已开奖的市场只能走结算"""
    if status not in MANUAL_STATUSES:
        raise HTTPException(400, "Invalid status")
    m = await get_market(session, market_id, for_update=True)
    if m.status in (MARKET_RESULTED, MARKET_SETTLED):
        raise HTTPException(400, STATUS_MESSAGES[m.status])
    m.status = status
    await session.flush()
    logger.info("market %s status -> %s", m.id, status)
    return m


async def refresh_market_status(session: AsyncSession) -> int:
    """waiting→open（到开盘时间），open→closed（过封盘时间），返回变更条数"""
    now = now_naive()
    opened = await session.execute(
        update(SatamatkaMarket)
        .where(SatamatkaMarket.status == MARKET_WAITING,
               SatamatkaMarket.open_time <= now,
               SatamatkaMarket.close_time > now)
        .values(status=MARKET_OPEN)
    )
    closed = await session.execute(
        update(SatamatkaMarket)
        .where(SatamatkaMarket.status.in_([MARKET_WAITING, MARKET_OPEN]),
               SatamatkaMarket.close_time <= now)
        .values(status=MARKET_CLOSED)
    )
    return (opened.rowcount or 0) + (closed.rowcount or 0)
