# app/services/booking_conflicts.py
"""
Regras de reserva de salas: normalização do intervalo, checagem de conflito,
delegação por papel e cancelamento.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import AuthorizationError, ConflictError, InvalidRangeError, NotFoundError
from app.modules.auth.schemas import AuthUser
from app.modules.bookings.models import Registro
from app.modules.bookings.schemas import BookingCreate
from app.modules.rooms.models import Sala
from app.modules.users.models import Usuario
from app.utils.datetimes import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Conflito de horário para esta sala"


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # intervalos [inicio, fim): encostar não é sobrepor
    return a_start < b_end and a_end > b_start


async def _get_booking(db: AsyncSession, booking_id: int) -> Registro | None:
    return await db.scalar(
        select(Registro)
        .options(selectinload(Registro.sala), selectinload(Registro.usuario))
        .where(Registro.id_registro == booking_id)
        .execution_options(populate_existing=True)
    )


async def _resolve_owner(db: AsyncSession, requester: AuthUser, delegate_id: int | None) -> int:
    if delegate_id is None or delegate_id == requester.id:
        return requester.id

    if requester.tipo not in settings.BOOKING_DELEGATE_ROLES:
        # política: sem permissão de delegar, a reserva fica em nome de quem pediu
        logger.info(
            "BOOKING_DELEGATION_IGNORED requester_id=%s tipo=%s delegate_id=%s",
            requester.id, requester.tipo, delegate_id,
        )
        return requester.id

    delegate = await db.get(Usuario, delegate_id)
    if not delegate:
        raise NotFoundError("Usuário não encontrado")
    return delegate.id_usuario


async def find_conflict(
    db: AsyncSession, id_sala: int, inicio: datetime, fim: datetime
) -> Registro | None:
    return await db.scalar(
        select(Registro)
        .where(
            Registro.id_sala == id_sala,
            Registro.inicio < fim,
            Registro.fim > inicio,
        )
        .limit(1)
    )


async def create_booking(db: AsyncSession, payload: BookingCreate, requester: AuthUser) -> Registro:
    inicio = parse_timestamp(payload.inicio)
    fim = parse_timestamp(payload.fim)
    if fim <= inicio:
        raise InvalidRangeError("fim deve ser após inicio")

    try:
        booking = await _insert_booking(db, payload, requester, inicio, fim)
    except OperationalError as e:
        # SQLite: outra reserva segurou a trava de escrita além do busy timeout
        if "locked" not in str(e.orig):
            raise
        await db.rollback()
        logger.warning("BOOKING_LOCK_TIMEOUT sala=%s", payload.id_sala)
        raise ConflictError(CONFLICT_MESSAGE)

    logger.info(
        "BOOKING_CREATED id=%s sala=%s usuario=%s %s-%s",
        booking.id_registro, booking.id_sala, booking.id_usuario,
        format_timestamp(inicio, "br"), format_timestamp(fim, "br"),
    )
    return await _get_booking(db, booking.id_registro)


async def _insert_booking(
    db: AsyncSession, payload: BookingCreate, requester: AuthUser, inicio: datetime, fim: datetime
) -> Registro:
    owner_id = await _resolve_owner(db, requester, payload.id_usuario)

    # trava a linha da sala (Postgres); no SQLite o BEGIN IMMEDIATE faz esse papel
    sala = await db.scalar(select(Sala).where(Sala.id_sala == payload.id_sala).with_for_update())
    if not sala:
        raise NotFoundError("Sala não encontrada")

    conflict = await find_conflict(db, sala.id_sala, inicio, fim)
    if conflict:
        await db.rollback()
        raise ConflictError(CONFLICT_MESSAGE, details={"id_registro": conflict.id_registro})

    booking = Registro(id_sala=sala.id_sala, id_usuario=owner_id, inicio=inicio, fim=fim)
    db.add(booking)
    try:
        await db.commit()
    except IntegrityError:
        # constraint de exclusão (Postgres) pegou uma reserva concorrente
        await db.rollback()
        raise ConflictError(CONFLICT_MESSAGE)
    return booking


async def delete_booking(db: AsyncSession, booking_id: int, requester: AuthUser) -> None:
    booking = await db.get(Registro, booking_id)
    if not booking:
        raise NotFoundError("Agendamento não encontrado")

    if booking.id_usuario != requester.id and requester.tipo not in settings.BOOKING_CANCEL_ROLES:
        raise AuthorizationError("Sem permissão")

    await db.delete(booking)
    await db.commit()
    logger.info("BOOKING_DELETED id=%s by=%s", booking_id, requester.id)


async def list_bookings(db: AsyncSession, requester: AuthUser, mine_only: bool = False) -> List[Registro]:
    stmt = (
        select(Registro)
        .options(selectinload(Registro.sala), selectinload(Registro.usuario))
        .order_by(Registro.inicio.asc(), Registro.id_registro.asc())
    )
    if mine_only:
        stmt = stmt.where(Registro.id_usuario == requester.id)
    res = await db.execute(stmt)
    return list(res.scalars().all())
