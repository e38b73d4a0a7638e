# app/models/commission.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, BigInteger, DateTime, ForeignKey, func
from app.db.session import Base, BigIntId

class CommissionRate(Base):
    __tablename__ = "commission_rate"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    subadmin_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("user.id", ondelete="CASCADE"))  # NULL = 平台默认
    game_type: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    commission_rate: Mapped[int] = mapped_column(Integer, nullable=False)   # 基点：800 = 8.00%
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
