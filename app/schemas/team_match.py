from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.satamatka import WagerOut

# 赔率字段为百分之一（200 = 2.00×）

class MatchIn(BaseModel):
    team_a: str = Field(min_length=1, max_length=64)
    team_b: str = Field(min_length=1, max_length=64)
    category: str = Field(default="cricket", pattern=r"^(cricket|football|basketball|other)$")
    description: Optional[str] = Field(default=None, max_length=255)
    match_time: datetime
    # 不传则取 team_match 的配置赔率
    odd_team_a: Optional[int] = Field(default=None, ge=100, le=2000)
    odd_team_b: Optional[int] = Field(default=None, ge=100, le=2000)
    odd_draw: Optional[int] = Field(default=None, ge=100, le=2000)

class MatchOut(BaseModel):
    id: int
    team_a: str
    team_b: str
    category: str
    description: Optional[str] = None
    match_time: datetime
    odd_team_a: int
    odd_team_b: int
    odd_draw: Optional[int] = None
    result: str
    toss_result: str
    status: str

    model_config = ConfigDict(from_attributes=True)

class MatchStatusIn(BaseModel):
    status: str = Field(pattern=r"^(open|closed)$")

class MatchResultIn(BaseModel):
    # result 为最终结果（之后比赛进入 resulted）；toss_result 只结算掷币注单
    result: Optional[str] = Field(default=None, pattern=r"^(team_a|team_b|draw)$")
    toss_result: Optional[str] = Field(default=None, pattern=r"^(team_a|team_b)$")

class TeamPlayIn(BaseModel):
    prediction: str = Field(pattern=r"^(team_a|team_b|draw)$")
    stake_amount: int = Field(gt=0)
    idempotency_key: Optional[str] = Field(default=None, max_length=64)

class TossPlayIn(BaseModel):
    prediction: str = Field(pattern=r"^(team_a|team_b)$")
    stake_amount: int = Field(gt=0)
    idempotency_key: Optional[str] = Field(default=None, max_length=64)

class MatchSettlementOut(BaseModel):
    match_id: int
    settled: int
    winners: int
    total_payout: int
    match_status: str

class MatchWagersOut(BaseModel):
    match: MatchOut
    wagers: List[WagerOut]
