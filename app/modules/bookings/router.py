from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db
from app.modules.auth.schemas import AuthUser
from app.services import booking_conflicts
from .schemas import BookingCreate, BookingOut

router = APIRouter()


@router.get("", response_model=List[BookingOut])
async def list_bookings(
    mine: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    return await booking_conflicts.list_bookings(db, user, mine_only=mine)


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    return await booking_conflicts.create_booking(db, payload, user)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    await booking_conflicts.delete_booking(db, booking_id, user)
