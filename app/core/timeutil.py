import pytz
from datetime import datetime
from app.core.config import settings

TZ = pytz.timezone(settings.TZ)

def now_local() -> datetime:
    return datetime.now(TZ)

def now_naive() -> datetime:
    # 库里存的是市场时区的 naive 时间
    return now_local().replace(tzinfo=None)

def to_naive(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(TZ).replace(tzinfo=None)
    return dt
