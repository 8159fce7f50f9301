from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field

Tipo = Literal["aluno", "professor", "coordenador", "admin"]


class UserOut(BaseModel):
    id: int
    nome: str
    email: EmailStr
    tipo: str
    # sub-perfis
    matricula: Optional[str] = None      # aluno
    disciplina: Optional[str] = None     # professor


class UserCreate(BaseModel):
    nome: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=6)
    tipo: Tipo
    matricula: Optional[str] = None
    disciplina: Optional[str] = None


class UserUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=2)
    tipo: Optional[Tipo] = None
    password: Optional[str] = Field(default=None, min_length=6)
    matricula: Optional[str] = None
    disciplina: Optional[str] = None
