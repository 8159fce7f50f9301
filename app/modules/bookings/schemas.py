from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, Field


class BookingCreate(BaseModel):
    # aceita aliases comuns vindos do front
    id_sala: int = Field(gt=0, validation_alias=AliasChoices("id_sala", "idSala", "roomId"))
    inicio: Union[datetime, str] = Field(validation_alias=AliasChoices("inicio", "start", "dataInicio"))
    fim: Union[datetime, str] = Field(validation_alias=AliasChoices("fim", "end", "dataFim"))
    id_usuario: Optional[int] = Field(
        default=None, gt=0, validation_alias=AliasChoices("id_usuario", "idUsuario", "userId")
    )


class BookingRoomOut(BaseModel):
    id_sala: int
    nome_sala: str
    capacidade: int

    class Config:
        from_attributes = True


class BookingUserOut(BaseModel):
    id_usuario: int
    nome: str
    tipo: str

    class Config:
        from_attributes = True


class BookingOut(BaseModel):
    id_registro: int
    id_sala: int
    id_usuario: int
    inicio: datetime
    fim: datetime
    sala: BookingRoomOut
    usuario: BookingUserOut

    class Config:
        from_attributes = True
