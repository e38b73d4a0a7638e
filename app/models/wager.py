from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, BigInteger, ForeignKey, UniqueConstraint, func
from app.db.session import Base, BigIntId

class Wager(Base):
    __tablename__ = "wager"
    __table_args__ = (
        # 幂等键按用户唯一
        UniqueConstraint("user_id", "idempotency_key", name="uq_wager_user_key"),
    )
    __mapper_args__ = {"eager_defaults": True}
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("user.id"), nullable=False, index=True)
    # Satamatka 注单挂 market_id，球队类挂 match_id
    market_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("satamatka_market.id"), index=True)
    match_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("team_match.id"), index=True)
    game_type: Mapped[str] = mapped_column(String(32), default="satamatka", nullable=False)
    game_mode: Mapped[str] = mapped_column(String(16), nullable=False)
    prediction: Mapped[str] = mapped_column(String(32), nullable=False)
    stake_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)       # paise
    odd_value: Mapped[int] = mapped_column(Integer, nullable=False)             # 下单时的赔率快照（百分之一）
    commission_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)  # pending / win / loss
    payout: Mapped[int] = mapped_column(BigInteger, default=0)
    balance_after: Mapped[int | None] = mapped_column(BigInteger)
    idempotency_key: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    settled_at: Mapped[datetime | None] = mapped_column(DateTime)
