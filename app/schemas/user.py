
from pydantic import BaseModel, ConfigDict

class UserOut(BaseModel):
    id: int
    username: str
    role: str
    status: int
    is_blocked: bool
    assigned_to: int | None = None
    balance: int = 0          # paise
    balance_display: str = "0.00"

    model_config = ConfigDict(from_attributes=True)

class AssignIn(BaseModel):
    subadmin_id: int
