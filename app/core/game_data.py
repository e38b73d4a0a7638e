# app/core/game_data.py
"""
每种玩法的下注内容（tagged union）

结算与展示都对 `kind` 做穷举匹配，不再去探测可选字段。
Satamatka 的 prediction 字符串在这里解析成具体类型：
  jodi      '00'..'99'
  harf      '0'..'9'（任一位）/ 'L5'（十位）/ 'R5'（个位）
  crossing  '3' 或 '2,3,5'（任一数字出现在任一位）
  odd_even  'odd' / 'even'
"""
from __future__ import annotations

import re
from typing import Annotated, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from app.core.payout import GameMode, Rational, apply_odds, compute_payout

RE_RESULT = re.compile(r"^[0-9]{2}$")
RE_JODI = re.compile(r"^[0-9]{2}$")
RE_HARF = re.compile(r"^([LR])?([0-9])$")
RE_CROSSING = re.compile(r"^[0-9](,[0-9])*$")

TEAM_A = "team_a"
TEAM_B = "team_b"
DRAW = "draw"

DEFAULT_DRAW_ODDS = 300


class JodiBet(BaseModel):
    kind: Literal["jodi"] = "jodi"
    number: str = Field(pattern=r"^[0-9]{2}$")


class HarfBet(BaseModel):
    kind: Literal["harf"] = "harf"
    digit: str = Field(pattern=r"^[0-9]$")
    position: Literal["any", "left", "right"] = "any"


class CrossingBet(BaseModel):
    kind: Literal["crossing"] = "crossing"
    digits: List[Annotated[str, Field(pattern=r"^[0-9]$")]] = Field(min_length=1)


class OddEvenBet(BaseModel):
    kind: Literal["odd_even"] = "odd_even"
    parity: Literal["odd", "even"]


class CricketTossBet(BaseModel):
    kind: Literal["cricket_toss"] = "cricket_toss"
    pick: Literal["team_a", "team_b"]
    odd_team_a: int = Field(default=190, ge=0)
    odd_team_b: int = Field(default=190, ge=0)


class TeamMatchBet(BaseModel):
    kind: Literal["team_match"] = "team_match"
    pick: Literal["team_a", "team_b", "draw"]
    odd_team_a: int = Field(default=200, ge=0)
    odd_team_b: int = Field(default=200, ge=0)
    odd_draw: Optional[int] = Field(default=None, ge=0)


GameData = Annotated[
    Union[JodiBet, HarfBet, CrossingBet, OddEvenBet, CricketTossBet, TeamMatchBet],
    Field(discriminator="kind"),
]

game_data_adapter = TypeAdapter(GameData)


def parse_game_data(game_mode: str, prediction: str) -> GameData:
    """Satamatka 的 (玩法, prediction) -> 具体类型；不合法抛 ValueError"""
    p = str(prediction or "").strip()
    mode = str(game_mode or "").strip().lower()

    if mode == GameMode.JODI.value:
        if RE_JODI.match(p):
            return JodiBet(number=p)
    elif mode == GameMode.HARF.value:
        m = RE_HARF.match(p.upper())
        if m:
            side, digit = m.groups()
            position = {"L": "left", "R": "right"}.get(side or "", "any")
            return HarfBet(digit=digit, position=position)
    elif mode == GameMode.CROSSING.value:
        if RE_CROSSING.match(p):
            digits = sorted(set(p.split(",")))
            return CrossingBet(digits=digits)
    elif mode == GameMode.ODD_EVEN.value:
        if p.lower() in ("odd", "even"):
            return OddEvenBet(parity=p.lower())
    else:
        raise ValueError(f"invalid game mode: {game_mode}")

    raise ValueError(f"invalid prediction for {mode}: {prediction}")


def load_game_data(raw: dict) -> GameData:
    try:
        return game_data_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValueError(str(e)) from e


def is_valid_result(result: Optional[str]) -> bool:
    return bool(result) and bool(RE_RESULT.match(result))


def is_winning(data: GameData, result: str) -> bool:
    """
    result：Satamatka 为两位开奖号 '00'..'99'；
    球队类为 team_a / team_b / draw。
    """
    if isinstance(data, (CricketTossBet, TeamMatchBet)):
        return data.pick == result

    if not is_valid_result(result):
        return False
    left, right = result[0], result[1]

    if isinstance(data, JodiBet):
        return data.number == result
    if isinstance(data, HarfBet):
        if data.position == "left":
            return data.digit == left
        if data.position == "right":
            return data.digit == right
        return data.digit in (left, right)
    if isinstance(data, CrossingBet):
        return left in data.digits or right in data.digits
    if isinstance(data, OddEvenBet):
        is_odd = int(result) % 2 == 1
        return (data.parity == "odd") == is_odd
    raise TypeError(f"unsupported game data: {type(data).__name__}")


def team_odds(data: GameData, result: str) -> int:
    """球队类按开奖结果取对应赔率（百分之一），平局未配置时 3.00"""
    if isinstance(data, CricketTossBet):
        return data.odd_team_a if result == TEAM_A else data.odd_team_b
    if isinstance(data, TeamMatchBet):
        if result == TEAM_A:
            return data.odd_team_a
        if result == TEAM_B:
            return data.odd_team_b
        return data.odd_draw if data.odd_draw is not None else DEFAULT_DRAW_ODDS
    raise TypeError(f"not a team game: {type(data).__name__}")


def payout_for(data: GameData, stake_amount: int, result: str,
               odds_table: Optional[Mapping[str, Rational]] = None) -> int:
    """未中奖为 0；中奖时 Satamatka 走 compute_payout，球队类走各自赔率"""
    if not is_winning(data, result):
        return 0
    if isinstance(data, (CricketTossBet, TeamMatchBet)):
        return apply_odds(stake_amount, team_odds(data, result))
    return compute_payout(data.kind, stake_amount, odds_table)
