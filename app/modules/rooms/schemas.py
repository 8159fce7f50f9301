from pydantic import BaseModel, Field


class RoomIn(BaseModel):
    nome_sala: str = Field(min_length=1, max_length=120)
    capacidade: int = Field(ge=1)


class RoomOut(BaseModel):
    id_sala: int
    nome_sala: str
    capacidade: int

    class Config:
        from_attributes = True
