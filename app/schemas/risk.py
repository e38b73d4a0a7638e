from typing import List, Optional
from pydantic import BaseModel

class RiskPlayerOut(BaseModel):
    user_id: int
    username: str
    bets: int
    bet_amount: int
    potential_win: int

class RiskEntryOut(BaseModel):
    market_id: Optional[int] = None
    match_id: Optional[int] = None
    name: str
    game_mode: str
    total_bets: int
    total_amount: int
    highest_bet: int
    potential_liability: int
    potential_liability_display: str
    player_count: int
    risk_level: str           # low / medium / high
    players: List[RiskPlayerOut]
