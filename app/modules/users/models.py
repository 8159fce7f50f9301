from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin

ROLES = ("aluno", "professor", "coordenador", "admin")
SELF_SERVICE_ROLES = ("aluno", "professor")


class Usuario(Base, TimestampMixin):
    __tablename__ = "usuario"

    id_usuario: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    nome: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    senha_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tipo: Mapped[str] = mapped_column(String(20), nullable=False, default="aluno")  # aluno | professor | coordenador | admin

    # sub-perfis por papel; a remoção fica a cargo do ON DELETE CASCADE
    aluno: Mapped[Optional["Aluno"]] = relationship(
        back_populates="usuario", cascade="all, delete-orphan", passive_deletes=True, uselist=False
    )
    professor: Mapped[Optional["Professor"]] = relationship(
        back_populates="usuario", cascade="all, delete-orphan", passive_deletes=True, uselist=False
    )

    @property
    def id(self) -> int:
        return self.id_usuario


class Aluno(Base):
    __tablename__ = "aluno"

    id_aluno: Mapped[int] = mapped_column(
        ForeignKey("usuario.id_usuario", ondelete="CASCADE"), primary_key=True
    )
    matricula: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    usuario: Mapped["Usuario"] = relationship(back_populates="aluno")


class Professor(Base):
    __tablename__ = "professor"

    id_professor: Mapped[int] = mapped_column(
        ForeignKey("usuario.id_usuario", ondelete="CASCADE"), primary_key=True
    )
    disciplina: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    usuario: Mapped["Usuario"] = relationship(back_populates="professor")
