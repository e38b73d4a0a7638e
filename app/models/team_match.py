from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, func
from app.db.session import Base, BigIntId

class TeamMatch(Base):
    __tablename__ = "team_match"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    team_a: Mapped[str] = mapped_column(String(64), nullable=False)
    team_b: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(16), default="cricket", nullable=False)  # cricket/football/basketball/other
    description: Mapped[str | None] = mapped_column(String(255))
    match_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # 赔率（百分之一），None 表示不开平局
    odd_team_a: Mapped[int] = mapped_column(Integer, default=200, nullable=False)
    odd_team_b: Mapped[int] = mapped_column(Integer, default=200, nullable=False)
    odd_draw: Mapped[int | None] = mapped_column(Integer)

    result: Mapped[str] = mapped_column(String(16), default="pending")  # pending/team_a/team_b/draw
    toss_result: Mapped[str] = mapped_column(String(16), default="pending")  # pending/team_a/team_b
    status: Mapped[str] = mapped_column(String(16), default="open", index=True)  # open/closed/resulted/settled

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
