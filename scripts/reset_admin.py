# scripts/reset_admin.py
# Uso: python -m scripts.reset_admin <email> <NovaSenha>
import sys, asyncio
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SchemaMismatchError
from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.services.credential_store import CredentialStore, PasswordUpdate


async def reset_password(db: AsyncSession, email: str, new_password: str) -> PasswordUpdate | None:
    store = CredentialStore(db)
    record = await store.find_user_by_email(email.strip().lower())
    if not record or record.id is None:
        return None
    try:
        info = await store.update_password(record.id, hash_password(new_password))
    except SchemaMismatchError:
        await db.rollback()
        return None
    await db.commit()
    return info


async def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("Uso: python -m scripts.reset_admin <email> <NovaSenha>")
        return 1
    email, new_password = argv

    async with AsyncSessionLocal() as db:
        info = await reset_password(db, email, new_password)
    if info is None:
        print(f"Usuário não encontrado: {email}")
        return 2
    print(f"Senha redefinida para {email} ({info.matched_field}/{info.matched_column}).")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
