"""
测试公共 fixture

- 每个用例一个内存 SQLite（aiosqlite + StaticPool），互不影响
- Redis 用内存替身，不依赖真实服务
- API 用例走 httpx.AsyncClient + ASGITransport，不触发 startup（不起调度器）
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "0")

import itertools
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.services.bootstrap_service  # noqa: F401  注册全部模型
from app.constants import MARKET_OPEN, ROLE_ADMIN, ROLE_PLAYER, ROLE_SUBADMIN
from app.core.security import create_access_token
from app.core.timeutil import now_naive
from app.db.session import Base, get_session
from app.main import app as fastapi_app
from app.models.market import SatamatkaMarket
from app.models.team_match import TeamMatch
from app.models.user import User
from app.services import odds_service


class FakeRedis:
    """只实现用到的几个命令"""

    def __init__(self):
        self.store = {}
        self.reads = 0

    async def hgetall(self, key):
        self.reads += 1
        return dict(self.store.get(key, {}))

    async def hset(self, key, mapping=None):
        self.store.setdefault(key, {}).update(mapping or {})
        return len(mapping or {})

    async def expire(self, key, seconds):
        return key in self.store

    async def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)


class BrokenRedis:
    async def hgetall(self, key):
        raise RedisConnectionError("redis down")

    async def hset(self, key, mapping=None):
        raise RedisConnectionError("redis down")

    async def expire(self, key, seconds):
        raise RedisConnectionError("redis down")

    async def delete(self, *keys):
        raise RedisConnectionError("redis down")


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fr = FakeRedis()
    monkeypatch.setattr(odds_service, "r", fr)
    return fr


@pytest.fixture
def broken_redis(monkeypatch):
    br = BrokenRedis()
    monkeypatch.setattr(odds_service, "r", br)
    return br


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
async def client(session_maker):
    async def _get_session():
        async with session_maker() as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as c:
        yield c
    fastapi_app.dependency_overrides.clear()


_seq = itertools.count(1)


@pytest.fixture
def make_user(session):
    async def _make(role=ROLE_PLAYER, balance=0, assigned_to=None, is_blocked=False):
        u = User(
            username=f"{role}{next(_seq)}",
            role=role,
            status=1,
            is_blocked=is_blocked,
            assigned_to=assigned_to,
            balance=balance,
            total_bet_amount=0,
            total_payout=0,
        )
        session.add(u)
        await session.commit()
        return u
    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user(role=ROLE_ADMIN)


@pytest.fixture
async def subadmin(make_user):
    return await make_user(role=ROLE_SUBADMIN)


@pytest.fixture
async def player(make_user):
    return await make_user(balance=100000)


@pytest.fixture
def auth():
    def _auth(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _auth


@pytest.fixture
def make_market(session):
    async def _make(status=MARKET_OPEN, close_in=timedelta(hours=1)):
        now = now_naive()
        m = SatamatkaMarket(
            name="Dishawar",
            type="dishawar",
            open_time=now - timedelta(hours=1),
            close_time=now + close_in,
            status=status,
        )
        session.add(m)
        await session.commit()
        return m
    return _make


@pytest.fixture
async def market(make_market):
    return await make_market()


@pytest.fixture
def make_match(session):
    async def _make(category="cricket", starts_in=timedelta(hours=1), status=MARKET_OPEN,
                    odd_team_a=160, odd_team_b=240, odd_draw=None):
        m = TeamMatch(
            team_a="India",
            team_b="Australia",
            category=category,
            match_time=now_naive() + starts_in,
            odd_team_a=odd_team_a,
            odd_team_b=odd_team_b,
            odd_draw=odd_draw,
            status=status,
        )
        session.add(m)
        await session.commit()
        return m
    return _make


@pytest.fixture
async def match(make_match):
    return await make_match()
