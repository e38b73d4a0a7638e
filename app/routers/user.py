from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN, ROLE_PLAYER, ROLE_SUBADMIN
from app.core.auth import get_current_user, require_role
from app.core.money import format_minor
from app.db.session import get_session
from app.models.user import User
from app.schemas.user import AssignIn, UserOut

router = APIRouter(prefix="/api/users", tags=["users"])

admin_only = require_role(ROLE_ADMIN)


def user_out(u: User) -> UserOut:
    out = UserOut.model_validate(u)
    out.balance_display = format_minor(int(u.balance or 0))
    return out


async def _get_user(session: AsyncSession, user_id: int) -> User:
    u = await session.get(User, user_id, with_for_update=True)
    if u is None:
        raise HTTPException(404, "User not found")
    return u


@router.get("/profile", response_model=UserOut)
async def profile(current_user: User = Depends(get_current_user)):
    return user_out(current_user)


@router.get("", response_model=List[UserOut])
async def users(
        role: Optional[str] = None,
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_role(ROLE_ADMIN, ROLE_SUBADMIN)),
):
    """管理员看全部；子管理员只看名下玩家"""
    stmt = select(User)
    if current_user.role == ROLE_SUBADMIN:
        stmt = stmt.where(User.assigned_to == current_user.id)
    if role:
        stmt = stmt.where(User.role == role)
    rows = (await session.execute(stmt.order_by(User.id.asc()).limit(limit).offset(offset))).scalars().all()
    return [user_out(u) for u in rows]


@router.post("/{user_id}/block", response_model=UserOut)
async def block(
        user_id: int,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(admin_only),
):
    return await _set_blocked(session, admin, user_id, True)


@router.post("/{user_id}/unblock", response_model=UserOut)
async def unblock(
        user_id: int,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(admin_only),
):
    return await _set_blocked(session, admin, user_id, False)


async def _set_blocked(session: AsyncSession, admin: User, user_id: int, blocked: bool) -> UserOut:
    if user_id == admin.id:
        raise HTTPException(400, "Cannot block yourself")
    try:
        u = await _get_user(session, user_id)
        u.is_blocked = blocked
        await session.commit()
    except Exception:
        await session.rollback(); raise
    return user_out(u)


@router.post("/{user_id}/assign", response_model=UserOut)
async def assign(
        user_id: int,
        payload: AssignIn,
        session: AsyncSession = Depends(get_session),
        admin: User = Depends(admin_only),
):
    """把玩家分配给子管理员（影响赔率与佣金的归属）"""
    try:
        u = await _get_user(session, user_id)
        if u.role != ROLE_PLAYER:
            raise HTTPException(400, "Only players can be assigned")
        sub = await session.get(User, payload.subadmin_id)
        if sub is None or sub.role != ROLE_SUBADMIN:
            raise HTTPException(400, "Invalid subadmin ID")
        u.assigned_to = sub.id
        await session.commit()
    except Exception:
        await session.rollback(); raise
    return user_out(u)
