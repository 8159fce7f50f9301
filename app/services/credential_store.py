# app/services/credential_store.py
"""
Acesso às credenciais do usuário tolerante a variações de schema.

Bancos antigos expõem o identificador como `id_usuario` ou `id` e guardam a
senha em `senha_hash`, `senha` ou `password`. O schema canônico é
`id_usuario` + `senha_hash`; este módulo é uma camada de compatibilidade e
some quando todos os bancos estiverem migrados.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import column, inspect, literal_column, select, table, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SchemaMismatchError

logger = logging.getLogger(__name__)

ID_FIELDS = ("id_usuario", "id")
PASSWORD_COLUMNS = ("senha_hash", "senha", "password")


def _pick(row: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if row.get(name) is not None:
            return row[name]
    return None


@dataclass
class CredentialRecord:
    id: Optional[int]
    email: Optional[str]
    nome: Optional[str]
    tipo: Optional[str]
    senha: Optional[str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CredentialRecord":
        return cls(
            id=_pick(row, ID_FIELDS + ("user_id",)),
            email=row.get("email"),
            nome=row.get("nome"),
            tipo=row.get("tipo"),
            senha=_pick(row, PASSWORD_COLUMNS),
        )

    def public(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "nome": self.nome, "tipo": self.tipo}


@dataclass(frozen=True)
class PasswordUpdate:
    matched_field: str
    matched_column: str


class CredentialStore:
    def __init__(self, db: AsyncSession, table_name: str = "usuario"):
        self.db = db
        self.table_name = table_name
        self._columns: Optional[set[str]] = None

    async def columns(self) -> set[str]:
        if self._columns is None:
            conn = await self.db.connection()
            self._columns = await conn.run_sync(
                lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns(self.table_name)}
            )
        return self._columns

    async def _select_one(self, field: str, value: Any) -> Optional[CredentialRecord]:
        stmt = (
            select(literal_column("*"))
            .select_from(table(self.table_name))
            .where(column(field) == value)
            .limit(1)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        return CredentialRecord.from_row(row) if row else None

    async def find_user_by_email(self, email: str) -> Optional[CredentialRecord]:
        return await self._select_one("email", email)

    async def find_user_by_id(self, user_id: int) -> Optional[CredentialRecord]:
        cols = await self.columns()
        for field in ID_FIELDS:
            if field not in cols:
                continue
            found = await self._select_one(field, user_id)
            if found:
                return found
        return None

    async def update_password(self, user_id: int, password_hash: str) -> PasswordUpdate:
        """
        Tenta cada par (identificador, coluna de senha) na ordem de prioridade
        até que um UPDATE atinja alguma linha. Não faz commit.
        """
        cols = await self.columns()
        for field in ID_FIELDS:
            if field not in cols:
                continue
            for col in PASSWORD_COLUMNS:
                if col not in cols:
                    continue
                t = table(self.table_name, column(field), column(col))
                stmt = update(t).where(t.c[field] == user_id).values({col: password_hash})
                res = await self.db.execute(stmt)
                if res.rowcount:
                    logger.debug("PASSWORD_UPDATE_MATCH field=%s column=%s", field, col)
                    return PasswordUpdate(matched_field=field, matched_column=col)

        raise SchemaMismatchError("Nenhuma combinação de identificador/coluna de senha funcionou")
