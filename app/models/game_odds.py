# app/models/game_odds.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, BigInteger, DateTime, ForeignKey, func
from app.db.session import Base, BigIntId

class GameOdds(Base):
    __tablename__ = "game_odds"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    game_type: Mapped[str] = mapped_column(String(32), index=True, nullable=False)   # 'satamatka_jodi' ...
    odd_value: Mapped[int] = mapped_column(Integer, nullable=False)                  # 百分之一：9000 = 90.00
    set_by_admin: Mapped[bool] = mapped_column(Boolean, default=True)
    subadmin_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("user.id", ondelete="CASCADE"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
