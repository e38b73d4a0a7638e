# app/constants.py

# 角色
ROLE_ADMIN = "admin"
ROLE_SUBADMIN = "subadmin"
ROLE_PLAYER = "player"

# 市场状态
MARKET_WAITING = "waiting"
MARKET_OPEN = "open"
MARKET_CLOSED = "closed"
MARKET_RESULTED = "resulted"
MARKET_SETTLED = "settled"

MARKET_TYPES = ("dishawar", "gali", "mumbai", "kalyan")

# 球队类玩法
TEAM_GAMES = ("team_match", "cricket_toss")
MATCH_CATEGORIES = ("cricket", "football", "basketball", "other")
MATCH_RESULT_PENDING = "pending"
MATCH_RESULTS = ("team_a", "team_b", "draw")
TOSS_RESULTS = ("team_a", "team_b")

# 注单状态
WAGER_PENDING = "pending"
WAGER_WIN = "win"
WAGER_LOSS = "loss"

# 资金流水
DIRECTION_IN = 1
DIRECTION_OUT = 2
BIZ_BET = 20
BIZ_PAYOUT = 30
BIZ_DEPOSIT = 40
BIZ_WITHDRAWAL = 41

# 钱包申请
REQUEST_DEPOSIT = "deposit"
REQUEST_WITHDRAWAL = "withdrawal"
REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"
PAYMENT_MODES = ("upi", "bank", "cash")

COMMISSION_DEPOSIT = "deposit"


# Redis keys
def k_odds(scope: str) -> str:
    # scope: 'admin' 或 'sub:<id>'
    return f"odds:{scope}"
