
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt

from app.core.config import settings

def create_access_token(subject: str | int, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": str(subject),
        "exp": int(expire.timestamp()),
        "iat": int(datetime.now(timezone.utc).timestamp()),
        "iss": settings.APP_NAME,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")
    return token
