from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, BigInteger, Boolean, ForeignKey, func
from app.db.session import Base, BigIntId

class User(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), default="player", nullable=False)  # admin / subadmin / player
    status: Mapped[int] = mapped_column(Integer, default=1)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)
    assigned_to: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("user.id"))

    # paise
    balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_bet_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    total_payout: Mapped[int] = mapped_column(BigInteger, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
