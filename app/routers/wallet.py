from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN, ROLE_SUBADMIN
from app.core.auth import get_current_user, require_role
from app.db.session import get_session
from app.models.user import User
from app.schemas.wallet import WalletRequestIn, WalletRequestOut, WalletReviewIn
from app.services.wallet_service import create_request, list_requests, review_request

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.post("/requests", response_model=WalletRequestOut, status_code=201)
async def new_request(
        payload: WalletRequestIn,
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    """提交充值/提现申请，审核通过后才变动余额"""
    try:
        req = await create_request(session, current_user, payload)
        await session.commit()
        return req
    except Exception:
        await session.rollback(); raise


@router.get("/requests", response_model=List[WalletRequestOut])
async def requests(
        status: Optional[str] = None,
        request_type: Optional[str] = None,
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    return await list_requests(session, current_user, status, request_type, limit, offset)


@router.post("/requests/{request_id}/review", response_model=WalletRequestOut)
async def review(
        request_id: int,
        payload: WalletReviewIn,
        session: AsyncSession = Depends(get_session),
        reviewer: User = Depends(require_role(ROLE_ADMIN, ROLE_SUBADMIN)),
):
    try:
        req = await review_request(session, reviewer, request_id, payload.status, payload.notes)
        await session.commit()
        return req
    except Exception:
        await session.rollback(); raise
