import logging

from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import engine, Base
# 注册所有模型到 Base.metadata
from app.models import commission, game_odds, market, team_match, user, wager, wallet  # noqa: F401
from app.services.odds_service import seed_default_odds

logger = logging.getLogger(__name__)

async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def ensure_default_odds(session: AsyncSession) -> None:
    n = await seed_default_odds(session)
    if n:
        logger.info("seeded %s default odds", n)
