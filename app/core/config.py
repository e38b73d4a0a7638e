import os
from dotenv import load_dotenv
load_dotenv()

class Settings:
    APP_NAME = os.getenv("APP_NAME", "satamatka-api")
    APP_ENV = os.getenv("APP_ENV", "dev")
    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))
    TZ = os.getenv("MARKET_TZ", "Asia/Kolkata")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

    # DATABASE_URL 优先，未配置时拼 MySQL
    DATABASE_URL = os.getenv("DATABASE_URL") or (
        f"mysql+aiomysql://{os.getenv('MYSQL_USER','root')}:{os.getenv('MYSQL_PASSWORD','123456')}"
        f"@{os.getenv('MYSQL_HOST','127.0.0.1')}:{os.getenv('MYSQL_PORT','3306')}/{os.getenv('MYSQL_DB','satamatka')}?charset=utf8mb4"
    )
    REDIS_URL = os.getenv("REDIS_URL") or f"redis://{os.getenv('REDIS_HOST','127.0.0.1')}:{os.getenv('REDIS_PORT','6379')}/{os.getenv('REDIS_DB','0')}"

    JWT_SECRET = os.getenv("JWT_SECRET", "change_me")
    JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "43200"))

    # 金额一律为最小货币单位（paise）
    BET_MIN_AMOUNT = int(os.getenv("BET_MIN_AMOUNT", "10"))
    BET_MAX_AMOUNT = int(os.getenv("BET_MAX_AMOUNT", "10000"))

    ODDS_CACHE_TTL_SECONDS = int(os.getenv("ODDS_CACHE_TTL_SECONDS", "300"))

    # 风控：待结算注单的潜在派彩超过阈值（paise）标为 medium / high
    RISK_MEDIUM_LIABILITY = int(os.getenv("RISK_MEDIUM_LIABILITY", "100000"))
    RISK_HIGH_LIABILITY = int(os.getenv("RISK_HIGH_LIABILITY", "500000"))

    SETTLE_POLL_SECONDS = int(os.getenv("SETTLE_POLL_SECONDS", "5"))
    MARKET_TICK_SECONDS = int(os.getenv("MARKET_TICK_SECONDS", "5"))
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "1") == "1"

settings = Settings()
