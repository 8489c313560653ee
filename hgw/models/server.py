from sqlalchemy import Boolean, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Server(Base):
    __tablename__ = "servers"

    id: Mapped[int] = mapped_column(primary_key=True)
    hostname: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    max_ram: Mapped[float] = mapped_column(Float, default=0.0)
    ram_used: Mapped[float] = mapped_column(Float, default=0.0)
    has_root: Mapped[bool] = mapped_column(Boolean, default=False)
    is_home: Mapped[bool] = mapped_column(Boolean, default=False)
    purchased_by_player: Mapped[bool] = mapped_column(Boolean, default=False)
    required_skill: Mapped[int] = mapped_column(Integer, default=1)
    ports_required: Mapped[int] = mapped_column(Integer, default=0)
    security: Mapped[float] = mapped_column(Float, default=1.0)
    min_security: Mapped[float] = mapped_column(Float, default=1.0)
    money: Mapped[float] = mapped_column(Float, default=0.0)
    max_money: Mapped[float] = mapped_column(Float, default=0.0)
    growth: Mapped[float] = mapped_column(Float, default=0.0)
