# app/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.session import AsyncSessionLocal

from app.routers.satamatka import router as satamatka_router
from app.routers.odds import router as odds_router
from app.routers.wallet import router as wallet_router
from app.routers.user import router as user_router
from app.routers.team_match import router as team_match_router
from app.routers.risk import router as risk_router
import logging, sys

# 启动相关
from app.tasks.scheduler import start_scheduler, stop_scheduler
from app.services.bootstrap_service import init_db, ensure_default_odds

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],         # 需要限制域名时改这里
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.WARNING),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# 降噪
logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)
logging.getLogger("apscheduler").setLevel(logging.ERROR)

# 结算日志保留
logging.getLogger("app.tasks.settlement").setLevel(logging.INFO)

app.include_router(satamatka_router)
app.include_router(odds_router)
app.include_router(wallet_router)
app.include_router(user_router)
app.include_router(team_match_router)
app.include_router(risk_router)


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        await ensure_default_odds(session)
    if settings.SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    stop_scheduler()


# 健康检查
@app.get("/ping")
async def ping():
    return {"ok": True, "env": settings.APP_ENV}


@app.get("/healthz")
async def healthz():
    return {"status": "healthy"}
