from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.constants import WAGER_PENDING
from app.core.money import format_profit_loss
from app.core.payout import GameMode

# 金额字段一律为 paise（int）；*_display 为展示用字符串

class MarketIn(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    type: str = Field(pattern=r"^(dishawar|gali|mumbai|kalyan)$")
    open_time: datetime
    close_time: datetime
    result_time: Optional[datetime] = None
    status: str = Field(default="open", pattern=r"^(waiting|open)$")

class MarketOut(BaseModel):
    id: int
    name: str
    type: str
    open_time: datetime
    close_time: datetime
    result_time: Optional[datetime] = None
    open_result: Optional[str] = None
    close_result: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)

class StatusIn(BaseModel):
    status: str = Field(pattern=r"^(waiting|open|closed)$")

class MarketResultIn(BaseModel):
    open_result: Optional[str] = Field(default=None, pattern=r"^[0-9]{2}$")
    close_result: Optional[str] = Field(default=None, pattern=r"^[0-9]{2}$")

class PlayIn(BaseModel):
    market_id: int
    game_mode: GameMode
    prediction: str = Field(min_length=1, max_length=32)
    stake_amount: int = Field(gt=0)
    idempotency_key: Optional[str] = Field(default=None, max_length=64)

class BetItemIn(BaseModel):
    prediction: str = Field(min_length=1, max_length=32)
    stake_amount: int = Field(gt=0)

class PlayMultipleIn(BaseModel):
    market_id: int
    game_mode: GameMode
    bets: List[BetItemIn] = Field(min_length=1)

class PotentialWinIn(BaseModel):
    game_mode: str
    stake_amount: int = Field(ge=0)

class PotentialWinOut(BaseModel):
    game_mode: str
    stake_amount: int
    odd_value: str
    potential_win: int
    potential_win_display: str

class WagerOut(BaseModel):
    id: int
    user_id: int
    market_id: Optional[int] = None
    match_id: Optional[int] = None
    game_type: str
    game_mode: str
    prediction: str
    stake_amount: int
    odd_value: int
    payout: int
    status: str
    balance_after: Optional[int] = None
    created_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def profit_loss(self) -> Optional[str]:
        """已结算注单的盈亏：'+80.00' / '-10.00'"""
        if self.status == WAGER_PENDING:
            return None
        return format_profit_loss(self.stake_amount, self.payout)

class PlayOut(BaseModel):
    wager: WagerOut
    balance: int
    balance_display: str

class PlayMultipleOut(BaseModel):
    wagers: List[WagerOut]
    total_amount: int
    balance: int

class SettlementOut(BaseModel):
    market_id: int
    settled: int
    winners: int
    total_payout: int
    market_status: str
