from __future__ import annotations

from datetime import datetime

from sqlalchemy import DDL, CheckConstraint, DateTime, ForeignKey, Index, Integer, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.modules.rooms.models import Sala
from app.modules.users.models import Usuario


class Registro(Base):
    """
    Reserva de uma sala por um usuário no intervalo [inicio, fim).
    """
    __tablename__ = "registro"

    id_registro: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id_sala: Mapped[int] = mapped_column(
        ForeignKey("sala.id_sala", ondelete="CASCADE"), index=True, nullable=False
    )
    id_usuario: Mapped[int] = mapped_column(
        ForeignKey("usuario.id_usuario", ondelete="CASCADE"), index=True, nullable=False
    )
    inicio: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    fim: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    sala: Mapped[Sala] = relationship(lazy="raise")
    usuario: Mapped[Usuario] = relationship(lazy="raise")

    __table_args__ = (
        CheckConstraint("fim > inicio", name="ck_registro_fim_apos_inicio"),
        Index("ix_registro_sala_inicio_fim", "id_sala", "inicio", "fim"),
    )


# Postgres: garante no banco que duas reservas da mesma sala não se sobrepõem.
# tsrange usa limites [) por padrão, então horários encostados continuam permitidos.
event.listen(
    Registro.__table__,
    "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Registro.__table__,
    "after_create",
    DDL(
        "ALTER TABLE registro ADD CONSTRAINT ex_registro_sala_sem_sobreposicao "
        "EXCLUDE USING gist (id_sala WITH =, tsrange(inicio, fim) WITH &&)"
    ).execute_if(dialect="postgresql"),
)
