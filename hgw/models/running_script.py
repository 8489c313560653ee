from sqlalchemy import Boolean, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class RunningScript(Base):
    __tablename__ = "running_scripts"

    id: Mapped[int] = mapped_column(primary_key=True)
    script: Mapped[str] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(16))
    host_id: Mapped[int] = mapped_column(ForeignKey("servers.id"))
    target_id: Mapped[int] = mapped_column(ForeignKey("servers.id"))
    threads: Mapped[int] = mapped_column(Integer, default=1)
    ram: Mapped[float] = mapped_column(Float, default=0.0)
    started_at_ms: Mapped[float] = mapped_column(Float, default=0.0)
    finish_at_ms: Mapped[float] = mapped_column(Float, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
