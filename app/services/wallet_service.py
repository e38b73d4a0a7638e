import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import (
    BIZ_DEPOSIT, BIZ_WITHDRAWAL, COMMISSION_DEPOSIT, DIRECTION_IN, DIRECTION_OUT,
    REQUEST_APPROVED, REQUEST_DEPOSIT, REQUEST_PENDING, REQUEST_REJECTED,
    ROLE_ADMIN, ROLE_PLAYER, ROLE_SUBADMIN,
)
from app.core.payout import compute_commission
from app.models.user import User
from app.models.wallet import WalletLedger, WalletRequest
from app.schemas.wallet import WalletRequestIn
from app.services.commission_service import get_commission_rate

logger = logging.getLogger(__name__)


def add_ledger(session: AsyncSession, user_id: int, direction: int, amount: int, balance_after: int,
               biz_type: int, ref_table: str | None = None, ref_id: int | None = None,
               remark: str | None = None) -> WalletLedger:
    ledger = WalletLedger(
        user_id=user_id,
        direction=direction,
        amount=amount,
        balance_after=balance_after,
        biz_type=biz_type,
        ref_table=ref_table,
        ref_id=ref_id,
        remark=remark,
    )
    session.add(ledger)
    return ledger


async def lock_user(session: AsyncSession, user_id: int) -> User:
    u = await session.get(User, user_id, with_for_update=True)
    if u is None:
        raise HTTPException(404, "User not found")
    return u


async def subadmin_of(session: AsyncSession, user: User) -> Optional[int]:
    """玩家归属的子管理员 id；未分配或归属管理员时返回 None"""
    if not user.assigned_to:
        return None
    owner = await session.get(User, user.assigned_to)
    if owner and owner.role == ROLE_SUBADMIN:
        return owner.id
    return None


async def create_request(session: AsyncSession, user: User, data: WalletRequestIn) -> WalletRequest:
    if user.is_blocked:
        raise HTTPException(403, "Your account is blocked")
    if data.request_type != REQUEST_DEPOSIT and int(user.balance or 0) < data.amount:
        raise HTTPException(400, "Insufficient balance")

    req = WalletRequest(
        user_id=user.id,
        amount=data.amount,
        request_type=data.request_type,
        payment_mode=data.payment_mode,
        payment_ref=data.payment_ref,
        notes=data.notes,
        status=REQUEST_PENDING,
        commission_amount=0,
    )
    session.add(req)
    await session.flush()
    return req


async def list_requests(session: AsyncSession, viewer: User, status: Optional[str] = None,
                        request_type: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[WalletRequest]:
    stmt = select(WalletRequest)
    if viewer.role == ROLE_SUBADMIN:
        players = select(User.id).where(User.assigned_to == viewer.id)
        stmt = stmt.where((WalletRequest.user_id.in_(players)) | (WalletRequest.user_id == viewer.id))
    elif viewer.role != ROLE_ADMIN:
        stmt = stmt.where(WalletRequest.user_id == viewer.id)
    if status:
        stmt = stmt.where(WalletRequest.status == status)
    if request_type:
        stmt = stmt.where(WalletRequest.request_type == request_type)
    stmt = stmt.order_by(WalletRequest.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(stmt)).scalars().all())


async def review_request(session: AsyncSession, reviewer: User, request_id: int, status: str,
                         notes: Optional[str] = None) -> WalletRequest:
    """
    审核充值/提现申请：
      - 管理员可审核所有；子管理员只能审核名下玩家
      - 只有 pending 可审核（重复审核直接 400，不会重复入账）
      - 充值通过：加余额；若玩家归属子管理员，记录充值佣金
      - 提现通过：校验余额后扣减
    """
    req = await session.get(WalletRequest, request_id, with_for_update=True)
    if req is None:
        raise HTTPException(404, "Request not found")
    if req.status != REQUEST_PENDING:
        raise HTTPException(400, "Request already reviewed")

    u = await lock_user(session, req.user_id)
    if reviewer.role == ROLE_SUBADMIN and u.assigned_to != reviewer.id:
        raise HTTPException(403, "User is not assigned to you")
    if reviewer.role not in (ROLE_ADMIN, ROLE_SUBADMIN):
        raise HTTPException(403, "Forbidden")

    req.reviewed_by = reviewer.id
    if notes:
        req.notes = notes

    if status == REQUEST_REJECTED:
        req.status = REQUEST_REJECTED
        await session.flush()
        return req

    bal = int(u.balance or 0)
    if req.request_type == REQUEST_DEPOSIT:
        u.balance = bal + req.amount
        add_ledger(session, u.id, DIRECTION_IN, req.amount, u.balance, BIZ_DEPOSIT,
                   "wallet_request", req.id, "deposit approved")
        sub_id = await subadmin_of(session, u) if u.role == ROLE_PLAYER else None
        if sub_id:
            rate = await get_commission_rate(session, sub_id, COMMISSION_DEPOSIT)
            req.commission_amount = compute_commission(req.amount, rate)
    else:
        if bal < req.amount:
            raise HTTPException(400, "Insufficient balance")
        u.balance = bal - req.amount
        add_ledger(session, u.id, DIRECTION_OUT, req.amount, u.balance, BIZ_WITHDRAWAL,
                   "wallet_request", req.id, "withdrawal approved")

    req.status = REQUEST_APPROVED
    await session.flush()
    logger.info("wallet request %s %s: user=%s amount=%s", req.id, req.request_type, u.id, req.amount)
    return req
