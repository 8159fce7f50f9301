# scripts/create_admin.py
# Uso: python -m scripts.create_admin
import sys, asyncio
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from getpass import getpass
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.modules.bookings.models import Registro  # noqa: F401  (registra as tabelas)
from app.modules.users.models import Usuario


async def create_admin(db: AsyncSession, nome: str, email: str, password: str) -> Usuario | None:
    email = email.strip().lower()
    exists = await db.execute(select(Usuario).where(Usuario.email == email))
    if exists.scalar_one_or_none():
        return None

    u = Usuario(nome=nome, email=email, senha_hash=hash_password(password), tipo="admin")
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


async def main():
    nome = input("Admin nome: ").strip() or "Administrador"
    email = input("Admin email: ").strip().lower()
    password = getpass("Admin password: ")

    async with AsyncSessionLocal() as db:
        u = await create_admin(db, nome, email, password)
        if u is None:
            print("User already exists")
            return
        print(f"Admin created: {u.id_usuario} ({u.email})")


if __name__ == "__main__":
    asyncio.run(main())
