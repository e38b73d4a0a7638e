# app/core/payout.py
"""
派彩计算（纯函数，无副作用）

赔率统一用“百分之一”整数存储：250 表示 2.50 倍。
派彩 = floor(本金 × 倍数)，向零截断，不做四舍五入；
全部用整数/分数运算，预览与结算结果逐位一致。
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from fractions import Fraction
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)


class GameMode(str, Enum):
    JODI = "jodi"
    HARF = "harf"
    CROSSING = "crossing"
    ODD_EVEN = "odd_even"


GAME_TYPE_SATAMATKA = "satamatka"

# 默认倍数（百分之一）
DEFAULT_ODDS: dict[str, int] = {
    GameMode.JODI.value: 9000,      # 90.00
    GameMode.HARF.value: 900,       # 9.00
    GameMode.CROSSING.value: 450,   # 4.50
    GameMode.ODD_EVEN.value: 180,   # 1.80
}

# 其他玩法的默认倍数，按 odds key 存
DEFAULT_GAME_ODDS: dict[str, int] = {
    "cricket_toss": 190,
    "team_match": 200,
}

IDENTITY_ODDS = 100

Rational = Union[int, Fraction, Decimal, str, float]


def odds_key(game_type: str, game_mode: Optional[str] = None) -> str:
    """(game_type, game_mode) -> 'satamatka_jodi'；无玩法时就是 game_type 本身"""
    return f"{game_type}_{game_mode}" if game_mode else game_type


def to_fraction(value: Rational) -> Fraction:
    """
    int 视为百分之一编码（8500 -> 85），其余类型视为倍数本身。
    float 先转字符串再转 Decimal，避免二进制误差。
    """
    if isinstance(value, bool):
        raise TypeError("odds value must be numeric")
    if isinstance(value, int):
        return Fraction(value, 100)
    if isinstance(value, Fraction):
        return value
    if isinstance(value, float):
        return Fraction(Decimal(str(value)))
    try:
        return Fraction(Decimal(str(value).strip()))
    except InvalidOperation as e:
        raise ValueError(f"invalid multiplier: {value!r}") from e


def multiplier_for(game_mode: str, odds_table: Optional[Mapping[str, Rational]] = None) -> Fraction:
    mode = str(game_mode or "").strip().lower()
    default = Fraction(DEFAULT_ODDS.get(mode, IDENTITY_ODDS), 100)
    if odds_table and mode in odds_table and odds_table[mode] is not None:
        try:
            return to_fraction(odds_table[mode])
        except (TypeError, ValueError, OverflowError) as e:
            # inf / nan / 非数字：按默认表
            logger.warning("bad odds entry for %s: %r (%s), using default", mode, odds_table[mode], e)
    return default


def compute_payout(game_mode: str, stake_amount: int,
                   odds_table: Optional[Mapping[str, Rational]] = None) -> int:
    """
    派彩金额（最小货币单位）。
    - odds_table 的值：int 是百分之一编码（8500 = 85.00 倍，85 = 0.85 倍），
      Decimal / Fraction / str / float 是倍数本身（Decimal("85") = 85 倍）
    - 未知玩法按 1 倍，不抛错
    - odds_table 缺项或值非法（inf、nan、非数字）时用默认表
    - 负数本金按 0 处理
    """
    stake = max(int(stake_amount or 0), 0)
    m = multiplier_for(game_mode, odds_table)
    if m < 0:
        m = Fraction(0)
    return (stake * m.numerator) // m.denominator


def apply_odds(stake_amount: int, odd_value: int) -> int:
    """按百分之一编码的赔率派彩（用于下单时快照的赔率）"""
    stake = max(int(stake_amount or 0), 0)
    return (stake * max(int(odd_value), 0)) // 100


def multiplier_to_str(odd_value: int) -> str:
    """250 -> '2.50'"""
    v = int(odd_value)
    sign = "-" if v < 0 else ""
    v = abs(v)
    return f"{sign}{v // 100}.{v % 100:02d}"


def parse_multiplier(value: Rational) -> int:
    """'2.5' / 2.5 / Decimal('2.50') -> 250；负数或超过两位小数报 ValueError"""
    if isinstance(value, bool):
        raise ValueError("multiplier must be numeric")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid multiplier: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"invalid multiplier: {value!r}")
    if d < 0:
        raise ValueError("multiplier must be >= 0")
    scaled = d * 100
    if scaled != scaled.to_integral_value():
        raise ValueError("multiplier supports at most two decimals")
    return int(scaled)


# ------------------------------
# 佣金（基点，10000 = 100%）
# ------------------------------
BASIS_POINTS = 10000

DEFAULT_COMMISSION_RATES: dict[str, int] = {
    "team_match": 1000,
    "cricket_toss": 1000,
    "satamatka_jodi": 800,
    "satamatka_harf": 800,
    "satamatka_crossing": 800,
    "satamatka_odd_even": 1000,
    "deposit": 0,
}


def compute_commission(amount: int, rate_bp: int) -> int:
    if rate_bp <= 0 or amount <= 0:
        return 0
    return (int(amount) * int(rate_bp)) // BASIS_POINTS


def rate_to_percent_str(rate_bp: int) -> str:
    """800 -> '8.00'"""
    return multiplier_to_str(rate_bp)


def parse_rate(value: Rational) -> int:
    """'8' / 8.5 -> 800 / 850，范围 0..10000"""
    bp = parse_multiplier(value)
    if bp > BASIS_POINTS:
        raise ValueError("commission rate must be between 0 and 100")
    return bp
