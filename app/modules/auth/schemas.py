from typing import Literal
from pydantic import BaseModel, EmailStr, Field


class AuthUser(BaseModel):
    id: int
    email: str
    nome: str
    tipo: str


class RegisterRequest(BaseModel):
    nome: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    # só aluno/professor via cadastro público
    tipo: Literal["aluno", "professor"]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginOut(BaseModel):
    token: str
    user: AuthUser


class ChangePasswordRequest(BaseModel):
    current: str = Field(min_length=1)
    next: str = Field(min_length=6)


class ForgotRequest(BaseModel):
    email: EmailStr


class ResetRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)


class OkOut(BaseModel):
    ok: bool = True
