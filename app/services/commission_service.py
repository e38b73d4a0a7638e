from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.payout import DEFAULT_COMMISSION_RATES, rate_to_percent_str
from app.models.commission import CommissionRate


COMMISSION_KEYS = list(DEFAULT_COMMISSION_RATES.keys())


async def _rates(session: AsyncSession, subadmin_id: Optional[int]) -> Dict[str, int]:
    stmt = select(CommissionRate.game_type, CommissionRate.commission_rate).where(
        CommissionRate.is_active.is_(True)
    )
    if subadmin_id:
        stmt = stmt.where(CommissionRate.subadmin_id == subadmin_id)
    else:
        stmt = stmt.where(CommissionRate.subadmin_id.is_(None))
    rows = (await session.execute(stmt.order_by(CommissionRate.id.asc()))).all()
    return {str(gt): int(rate) for gt, rate in rows}


async def get_default_rates(session: AsyncSession) -> Dict[str, int]:
    stored = await _rates(session, None)
    return {k: stored.get(k, DEFAULT_COMMISSION_RATES[k]) for k in COMMISSION_KEYS}


async def get_commission_rate(session: AsyncSession, subadmin_id: Optional[int], game_type: str) -> int:
    """子管理员 → 平台默认 → 内置默认 → 0（基点）"""
    if subadmin_id:
        own = await _rates(session, subadmin_id)
        if game_type in own:
            return own[game_type]
    platform = await _rates(session, None)
    if game_type in platform:
        return platform[game_type]
    return DEFAULT_COMMISSION_RATES.get(game_type, 0)


async def upsert_commission(session: AsyncSession, subadmin_id: Optional[int], game_type: str,
                            rate_bp: int) -> CommissionRate:
    if not 0 <= rate_bp <= 10000:
        raise ValueError("commission rate must be between 0 and 10000")
    stmt = select(CommissionRate).where(CommissionRate.game_type == game_type)
    if subadmin_id:
        stmt = stmt.where(CommissionRate.subadmin_id == subadmin_id)
    else:
        stmt = stmt.where(CommissionRate.subadmin_id.is_(None))
    row = (await session.execute(stmt.order_by(CommissionRate.id.desc()).limit(1))).scalar_one_or_none()
    if row:
        row.commission_rate = rate_bp
        row.is_active = True
    else:
        row = CommissionRate(subadmin_id=subadmin_id, game_type=game_type, commission_rate=rate_bp, is_active=True)
        session.add(row)
    await session.flush()
    return row


async def complete_commissions(session: AsyncSession, subadmin_id: int) -> List[dict]:
    own = await _rates(session, subadmin_id)
    defaults = await get_default_rates(session)
    out = []
    for k in COMMISSION_KEYS:
        rate = own.get(k, defaults[k])
        out.append({
            "subadmin_id": subadmin_id,
            "game_type": k,
            "commission_rate": rate_to_percent_str(rate),
            "is_default": k not in own,
        })
    return out
