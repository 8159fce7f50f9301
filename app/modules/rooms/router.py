from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, require_roles
from app.core.errors import NotFoundError
from app.modules.auth.schemas import AuthUser
from .models import Sala
from .schemas import RoomIn, RoomOut

router = APIRouter()

ROOM_EDITORS = ("admin", "coordenador")


async def get_room_or_404(db: AsyncSession, room_id: int) -> Sala:
    sala = await db.get(Sala, room_id)
    if not sala:
        raise NotFoundError("Sala não encontrada")
    return sala


@router.get("", response_model=List[RoomOut])
async def list_rooms(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    res = await db.execute(select(Sala).order_by(Sala.id_sala.asc()))
    return res.scalars().all()


@router.get("/{room_id}", response_model=RoomOut)
async def get_room(
    room_id: int,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    return await get_room_or_404(db, room_id)


# CREATE: admin ou coordenador
@router.post("", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: RoomIn,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(require_roles(*ROOM_EDITORS)),
):
    sala = Sala(**payload.model_dump())
    db.add(sala)
    await db.commit()
    await db.refresh(sala)
    return sala


# UPDATE: admin ou coordenador
@router.put("/{room_id}", response_model=RoomOut)
async def update_room(
    room_id: int,
    payload: RoomIn,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(require_roles(*ROOM_EDITORS)),
):
    sala = await get_room_or_404(db, room_id)
    for k, v in payload.model_dump().items():
        setattr(sala, k, v)
    await db.commit()
    await db.refresh(sala)
    return sala


# DELETE: somente admin (reservas da sala caem junto)
@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: int,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(require_roles("admin")),
):
    sala = await get_room_or_404(db, room_id)
    await db.delete(sala)
    await db.commit()
