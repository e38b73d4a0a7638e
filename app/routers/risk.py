from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import ROLE_ADMIN, ROLE_SUBADMIN
from app.core.auth import require_role
from app.db.session import get_session
from app.models.user import User
from app.schemas.risk import RiskEntryOut
from app.services.risk_service import satamatka_risk, team_match_risk

router = APIRouter(prefix="/api/risk", tags=["risk"])


@router.get("/satamatka", response_model=List[RiskEntryOut])
async def satamatka(
        market_id: Optional[int] = None,
        session: AsyncSession = Depends(get_session),
        staff: User = Depends(require_role(ROLE_ADMIN, ROLE_SUBADMIN)),
):
    return await satamatka_risk(session, staff, market_id)


@router.get("/team-matches", response_model=List[RiskEntryOut])
async def team_matches(
        match_id: Optional[int] = None,
        session: AsyncSession = Depends(get_session),
        staff: User = Depends(require_role(ROLE_ADMIN, ROLE_SUBADMIN)),
):
    return await team_match_risk(session, staff, match_id)
