# app/tasks/scheduler.py
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.services.market_service import refresh_market_status
from app.services.match_service import refresh_match_status
from app.tasks.settlement import settle_pending_job

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=settings.TZ)


async def market_status_job():
    """按开盘/封盘时间推进市场状态，比赛到点封盘"""
    try:
        async with AsyncSessionLocal() as session:
            async with session.begin():
                n = await refresh_market_status(session)
                n += await refresh_match_status(session)
        if n:
            logger.info("market status updated: %s", n)
    except Exception as e:
        logger.exception("market_status_job failed: %s", e)


def start_scheduler():
    """
    启动调度器：
      - 市场状态（waiting→open→closed），比赛 open→closed
      - 结算任务（扫描 resulted 市场和比赛并派彩）
    """
    scheduler.add_job(
        market_status_job,
        "interval",
        seconds=settings.MARKET_TICK_SECONDS,
        id="market_status",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=5,
    )

    scheduler.add_job(
        settle_pending_job,
        "interval",
        seconds=settings.SETTLE_POLL_SECONDS,
        id="settle_pending_job",
        replace_existing=True,
        coalesce=True,          # 合并堆积触发
        max_instances=1,        # 防并发重复派彩
        misfire_grace_time=10,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
