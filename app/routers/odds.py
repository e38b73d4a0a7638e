from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN, ROLE_SUBADMIN
from app.core.auth import require_role
from app.core.payout import multiplier_to_str, parse_multiplier, parse_rate, rate_to_percent_str
from app.db.session import get_session
from app.models.game_odds import GameOdds
from app.models.user import User
from app.schemas.odds import (
    CommissionOut, DefaultCommissionsIn, GameOddIn, GameOddOut, SubadminCommissionsIn, SubadminOddsIn,
)
from app.services.commission_service import (
    complete_commissions, get_default_rates, upsert_commission,
)
from app.services.odds_service import (
    complete_odds, invalidate_odds_cache, list_game_odds, upsert_game_odd,
)

router = APIRouter(prefix="/api", tags=["odds"])

staff = require_role(ROLE_ADMIN, ROLE_SUBADMIN)
admin_only = require_role(ROLE_ADMIN)


def odd_out(row: GameOdds) -> GameOddOut:
    return GameOddOut(
        id=row.id,
        game_type=row.game_type,
        odd_value=multiplier_to_str(row.odd_value),
        set_by_admin=bool(row.set_by_admin),
        subadmin_id=row.subadmin_id,
    )


def to_odd_value(v) -> int:
    try:
        return parse_multiplier(v)
    except ValueError as e:
        raise HTTPException(400, str(e)) from e


def to_rate(v) -> int:
    try:
        return parse_rate(v)
    except ValueError as e:
        raise HTTPException(400, str(e)) from e


async def check_subadmin(session: AsyncSession, current_user: User, subadmin_id: int) -> None:
    # 子管理员只能操作自己
    if current_user.role == ROLE_SUBADMIN and current_user.id != subadmin_id:
        raise HTTPException(403, "Unauthorized")
    sub = await session.get(User, subadmin_id)
    if not sub or sub.role != ROLE_SUBADMIN:
        raise HTTPException(400, "Invalid subadmin ID")


# ------------------------------
# 赔率
# ------------------------------
@router.get("/game-odds", response_model=List[GameOddOut])
async def get_game_odds(
        game_type: Optional[str] = None,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    rows = await list_game_odds(session, game_type)
    return [odd_out(r) for r in rows]


@router.post("/game-odds", response_model=GameOddOut)
async def set_game_odd(
        payload: GameOddIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    """管理员可设任意赔率；子管理员只能设自己的，且不能设管理员赔率"""
    if current_user.role == ROLE_SUBADMIN:
        if payload.set_by_admin:
            raise HTTPException(403, "Subadmins cannot set admin odds")
        if payload.subadmin_id and payload.subadmin_id != current_user.id:
            raise HTTPException(403, "Subadmins can only set their own odds")
        subadmin_id, set_by_admin = current_user.id, False
    else:
        subadmin_id, set_by_admin = payload.subadmin_id, True

    value = to_odd_value(payload.odd_value)
    try:
        row = await upsert_game_odd(session, payload.game_type, value, set_by_admin, subadmin_id)
        await session.commit()
    except Exception:
        await session.rollback(); raise
    await invalidate_odds_cache(subadmin_id)
    return odd_out(row)


@router.get("/odds/admin", response_model=List[GameOddOut])
async def admin_odds(
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    return [GameOddOut(**o) for o in await complete_odds(session, None)]


@router.get("/odds/subadmin/{subadmin_id}", response_model=List[GameOddOut])
async def subadmin_odds(
        subadmin_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    await check_subadmin(session, current_user, subadmin_id)
    return [GameOddOut(**o) for o in await complete_odds(session, subadmin_id)]


@router.post("/odds/subadmin/{subadmin_id}", response_model=List[GameOddOut])
async def set_subadmin_odds(
        subadmin_id: int,
        payload: SubadminOddsIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    await check_subadmin(session, current_user, subadmin_id)
    set_by_admin = current_user.role == ROLE_ADMIN
    values = [(o.game_type, to_odd_value(o.odd_value)) for o in payload.odds]
    try:
        rows = [await upsert_game_odd(session, gt, v, set_by_admin, subadmin_id) for gt, v in values]
        await session.commit()
    except Exception:
        await session.rollback(); raise
    await invalidate_odds_cache(subadmin_id)
    return [odd_out(r) for r in rows]


# ------------------------------
# 佣金
# ------------------------------
@router.get("/commissions/default", response_model=List[CommissionOut])
async def default_commissions(
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(admin_only),
):
    rates = await get_default_rates(session)
    return [CommissionOut(game_type=k, commission_rate=rate_to_percent_str(v), is_default=True)
            for k, v in rates.items()]


@router.post("/commissions/default", response_model=List[CommissionOut])
async def set_default_commissions(
        payload: DefaultCommissionsIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(admin_only),
):
    values = [(k, to_rate(v)) for k, v in payload.default_rates.items()]
    try:
        rows = [await upsert_commission(session, None, k, v) for k, v in values]
        await session.commit()
    except Exception:
        await session.rollback(); raise
    return [CommissionOut(game_type=r.game_type, commission_rate=rate_to_percent_str(r.commission_rate),
                          is_default=True) for r in rows]


@router.get("/commissions/subadmin/{subadmin_id}", response_model=List[CommissionOut])
async def subadmin_commissions(
        subadmin_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(staff),
):
    await check_subadmin(session, current_user, subadmin_id)
    return [CommissionOut(**c) for c in await complete_commissions(session, subadmin_id)]


@router.post("/commissions/subadmin/{subadmin_id}", response_model=List[CommissionOut])
async def set_subadmin_commissions(
        subadmin_id: int,
        payload: SubadminCommissionsIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(admin_only),
):
    await check_subadmin(session, current_user, subadmin_id)
    values = [(c.game_type, to_rate(c.commission_rate)) for c in payload.commissions]
    try:
        rows = [await upsert_commission(session, subadmin_id, k, v) for k, v in values]
        await session.commit()
    except Exception:
        await session.rollback(); raise
    return [CommissionOut(subadmin_id=subadmin_id, game_type=r.game_type,
                          commission_rate=rate_to_percent_str(r.commission_rate)) for r in rows]
