from sqlalchemy import Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    hacking_skill: Mapped[int] = mapped_column(Integer, default=1)
    hacking_exp: Mapped[float] = mapped_column(Float, default=0.0)
    money: Mapped[float] = mapped_column(Float, default=1000.0)
    # Number of port-opening programs owned; gates root access.
    port_openers: Mapped[int] = mapped_column(Integer, default=0)
