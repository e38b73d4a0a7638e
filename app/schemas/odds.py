from typing import List, Optional
from pydantic import BaseModel, Field

# odd_value / commission_rate 对外是十进制字符串或数字（'90.00' / 8.5），库内为整数

class GameOddIn(BaseModel):
    game_type: str = Field(min_length=1, max_length=32)
    odd_value: float | str
    set_by_admin: Optional[bool] = None
    subadmin_id: Optional[int] = None

class GameOddOut(BaseModel):
    id: Optional[int] = None
    game_type: str
    odd_value: str
    set_by_admin: bool
    subadmin_id: Optional[int] = None

class SubadminOddsIn(BaseModel):
    odds: List[GameOddIn]

class CommissionIn(BaseModel):
    game_type: str = Field(min_length=1, max_length=32)
    commission_rate: float | str

class SubadminCommissionsIn(BaseModel):
    commissions: List[CommissionIn]

class DefaultCommissionsIn(BaseModel):
    default_rates: dict[str, float | str]

class CommissionOut(BaseModel):
    subadmin_id: Optional[int] = None
    game_type: str
    commission_rate: str
    is_default: bool = False
