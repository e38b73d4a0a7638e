from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class WalletRequestIn(BaseModel):
    amount: int = Field(gt=0)                                  # paise
    request_type: str = Field(pattern=r"^(deposit|withdrawal)$")
    payment_mode: str = Field(pattern=r"^(upi|bank|cash)$")
    payment_ref: Optional[str] = Field(default=None, max_length=64)
    notes: Optional[str] = Field(default=None, max_length=255)

class WalletReviewIn(BaseModel):
    status: str = Field(pattern=r"^(approved|rejected)$")
    notes: Optional[str] = Field(default=None, max_length=255)

class WalletRequestOut(BaseModel):
    id: int
    user_id: int
    amount: int
    request_type: str
    payment_mode: str
    payment_ref: Optional[str] = None
    status: str
    notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    commission_amount: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
