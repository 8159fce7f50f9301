from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.dependencies import get_db, require_roles
from app.core.errors import ConflictError, NotFoundError
from app.core.security import hash_password
from app.modules.auth.schemas import AuthUser
from .models import Aluno, Professor, Usuario
from .schemas import UserCreate, UserOut, UserUpdate

router = APIRouter()

admin_only = require_roles("admin")


def _to_out(u: Usuario) -> UserOut:
    return UserOut(
        id=u.id_usuario,
        nome=u.nome,
        email=u.email,
        tipo=u.tipo,
        matricula=u.aluno.matricula if u.aluno else None,
        disciplina=u.professor.disciplina if u.professor else None,
    )


async def get_user_or_404(db: AsyncSession, user_id: int) -> Usuario:
    u = await db.scalar(
        select(Usuario)
        .options(selectinload(Usuario.aluno), selectinload(Usuario.professor))
        .where(Usuario.id_usuario == user_id)
    )
    if not u:
        raise NotFoundError("Usuário não encontrado")
    return u


@router.get("", response_model=List[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(admin_only),
):
    res = await db.execute(
        select(Usuario)
        .options(selectinload(Usuario.aluno), selectinload(Usuario.professor))
        .order_by(Usuario.id_usuario.asc())
    )
    return [_to_out(u) for u in res.scalars().all()]


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(admin_only),
):
    return _to_out(await get_user_or_404(db, user_id))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(admin_only),
):
    email = payload.email.strip().lower()
    exists = await db.execute(select(Usuario.id_usuario).where(Usuario.email == email))
    if exists.scalar_one_or_none():
        raise ConflictError("E-mail já cadastrado.")

    u = Usuario(
        nome=payload.nome.strip(),
        email=email,
        senha_hash=await run_in_threadpool(hash_password, payload.password),
        tipo=payload.tipo,
    )
    # usuário e sub-perfil entram no mesmo commit
    u.aluno = Aluno(matricula=payload.matricula or "") if payload.tipo == "aluno" else None
    u.professor = Professor(disciplina=payload.disciplina or "") if payload.tipo == "professor" else None
    db.add(u)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("E-mail já cadastrado.")
    return _to_out(u)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(admin_only),
):
    u = await get_user_or_404(db, user_id)

    # troca de papel: sub-perfil antigo sai (delete-orphan)
    if payload.tipo and payload.tipo != u.tipo:
        u.aluno = None
        u.professor = None
        u.tipo = payload.tipo

    if payload.nome is not None:
        u.nome = payload.nome.strip()
    if payload.password:
        u.senha_hash = await run_in_threadpool(hash_password, payload.password)

    if u.tipo == "aluno":
        if u.aluno is None:
            u.aluno = Aluno(matricula=payload.matricula or "")
        elif payload.matricula is not None:
            u.aluno.matricula = payload.matricula
    elif u.tipo == "professor":
        if u.professor is None:
            u.professor = Professor(disciplina=payload.disciplina or "")
        elif payload.disciplina is not None:
            u.professor.disciplina = payload.disciplina

    await db.commit()
    return _to_out(u)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(admin_only),
):
    u = await db.get(Usuario, user_id)
    if not u:
        raise NotFoundError("Usuário não encontrado")

    # sub-perfis e reservas saem via ON DELETE CASCADE
    await db.delete(u)
    await db.commit()
