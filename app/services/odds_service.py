# app/services/odds_service.py
"""
赔率配置：子管理员 → 管理员 → 内置默认

读路径：Redis 缓存（hash，scope 维度）→ DB → 默认表。
Redis 或 DB 不可用只记 warning，永远不会阻塞下单/结算。
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import k_odds
from app.core.config import settings
from app.core.payout import (
    DEFAULT_GAME_ODDS,
    DEFAULT_ODDS,
    GAME_TYPE_SATAMATKA,
    GameMode,
    IDENTITY_ODDS,
    multiplier_to_str,
    odds_key,
)
from app.db.redis import r
from app.models.game_odds import GameOdds

logger = logging.getLogger(__name__)

SATAMATKA_MODES = [m.value for m in GameMode]

ODDS_KEYS = [
    "team_match",
    "cricket_toss",
    *[odds_key(GAME_TYPE_SATAMATKA, m) for m in SATAMATKA_MODES],
]

_EMPTY = "_"


def default_for_key(key: str) -> int:
    prefix = f"{GAME_TYPE_SATAMATKA}_"
    if key.startswith(prefix):
        return DEFAULT_ODDS.get(key[len(prefix):], IDENTITY_ODDS)
    return DEFAULT_GAME_ODDS.get(key, IDENTITY_ODDS)


def _scope(subadmin_id: Optional[int]) -> str:
    return f"sub:{subadmin_id}" if subadmin_id else "admin"


async def _read_rows(session: AsyncSession, subadmin_id: Optional[int]) -> Dict[str, int]:
    stmt = select(GameOdds.game_type, GameOdds.odd_value).where(GameOdds.is_active.is_(True))
    if subadmin_id:
        stmt = stmt.where(GameOdds.subadmin_id == subadmin_id)
    else:
        stmt = stmt.where(GameOdds.set_by_admin.is_(True), GameOdds.subadmin_id.is_(None))
    # 同一 key 多行时以最新的为准
    rows = (await session.execute(stmt.order_by(GameOdds.id.asc()))).all()
    return {str(gt): int(v) for gt, v in rows}


async def _scoped_odds(session: AsyncSession, subadmin_id: Optional[int]) -> Dict[str, int]:
    key = k_odds(_scope(subadmin_id))
    cache_ok = True
    try:
        cached = await r.hgetall(key)
        if cached:
            return {k: int(v) for k, v in cached.items() if k != _EMPTY}
    except RedisError as e:
        cache_ok = False
        logger.warning("odds cache read failed (%s): %s", key, e)

    rows = await _read_rows(session, subadmin_id)

    if cache_ok:
        try:
            await r.hset(key, mapping={_EMPTY: "1", **{k: str(v) for k, v in rows.items()}})
            await r.expire(key, settings.ODDS_CACHE_TTL_SECONDS)
        except RedisError as e:
            logger.warning("odds cache write failed (%s): %s", key, e)
    return rows


async def resolve_odds(session: AsyncSession, keys: List[str],
                       subadmin_id: Optional[int] = None) -> Dict[str, int]:
    """按 key 取有效赔率（百分之一），每个 key 都有值"""
    try:
        admin = await _scoped_odds(session, None)
    except SQLAlchemyError as e:
        logger.warning("odds store unavailable, using defaults: %s", e)
        admin = {}
    sub: Dict[str, int] = {}
    if subadmin_id:
        try:
            sub = await _scoped_odds(session, subadmin_id)
        except SQLAlchemyError as e:
            logger.warning("subadmin odds unavailable (sub=%s): %s", subadmin_id, e)

    out: Dict[str, int] = {}
    for k in keys:
        if k in sub:
            out[k] = sub[k]
        elif k in admin:
            out[k] = admin[k]
        else:
            out[k] = default_for_key(k)
    return out


async def get_multiplier(session: AsyncSession, game_type: str, game_mode: Optional[str] = None,
                         subadmin_id: Optional[int] = None) -> int:
    key = odds_key(game_type, game_mode)
    return (await resolve_odds(session, [key], subadmin_id))[key]


async def load_odds_table(session: AsyncSession, game_type: str = GAME_TYPE_SATAMATKA,
                          subadmin_id: Optional[int] = None) -> Dict[str, int]:
    """{ 'jodi': 9000, 'harf': 900, ... }，直接喂给 compute_payout"""
    keys = {odds_key(game_type, m): m for m in SATAMATKA_MODES}
    resolved = await resolve_odds(session, list(keys), subadmin_id)
    return {mode: resolved[k] for k, mode in keys.items()}


async def invalidate_odds_cache(subadmin_id: Optional[int] = None) -> None:
    try:
        await r.delete(k_odds(_scope(subadmin_id)))
    except RedisError as e:
        logger.warning("odds cache invalidate failed: %s", e)


async def upsert_game_odd(session: AsyncSession, game_type: str, odd_value: int,
                          set_by_admin: bool, subadmin_id: Optional[int] = None) -> GameOdds:
    """调用方负责 commit，commit 后再 invalidate_odds_cache"""
    if odd_value < 0:
        raise ValueError("odd value must be >= 0")
    stmt = select(GameOdds).where(GameOdds.game_type == game_type)
    if subadmin_id:
        stmt = stmt.where(GameOdds.subadmin_id == subadmin_id)
    else:
        stmt = stmt.where(GameOdds.set_by_admin.is_(True), GameOdds.subadmin_id.is_(None))
    row = (await session.execute(stmt.order_by(GameOdds.id.desc()).limit(1))).scalar_one_or_none()
    if row:
        row.odd_value = int(odd_value)
        row.set_by_admin = set_by_admin
        row.is_active = True
    else:
        row = GameOdds(
            game_type=game_type,
            odd_value=int(odd_value),
            set_by_admin=set_by_admin,
            subadmin_id=subadmin_id,
            is_active=True,
        )
        session.add(row)
    await session.flush()
    return row


async def list_game_odds(session: AsyncSession, game_type: Optional[str] = None,
                         subadmin_id: Optional[int] = None) -> List[GameOdds]:
    stmt = select(GameOdds)
    if game_type:
        stmt = stmt.where(GameOdds.game_type == game_type)
    if subadmin_id:
        stmt = stmt.where(GameOdds.subadmin_id == subadmin_id)
    return list((await session.execute(stmt.order_by(GameOdds.id.asc()))).scalars().all())


async def complete_odds(session: AsyncSession, subadmin_id: Optional[int] = None) -> List[dict]:
    """所有 key 都给出值（缺的用上级/默认补齐），赔率转成 '90.00' 展示"""
    resolved = await resolve_odds(session, ODDS_KEYS, subadmin_id)
    return [
        {
            "game_type": k,
            "odd_value": multiplier_to_str(resolved[k]),
            "set_by_admin": subadmin_id is None,
            "subadmin_id": subadmin_id,
        }
        for k in ODDS_KEYS
    ]


async def seed_default_odds(session: AsyncSession) -> int:
    """管理员赔率表为空时写入默认值，返回写入条数"""
    existing = await _read_rows(session, None)
    n = 0
    for k in ODDS_KEYS:
        if k not in existing:
            session.add(GameOdds(game_type=k, odd_value=default_for_key(k), set_by_admin=True, is_active=True))
            n += 1
    if n:
        await session.commit()
        await invalidate_odds_cache(None)
    return n
