from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Sala(Base):
    __tablename__ = "sala"

    id_sala: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nome_sala: Mapped[str] = mapped_column(String(120), nullable=False)
    capacidade: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("capacidade > 0", name="ck_sala_capacidade_positiva"),
    )
