from typing import AsyncIterator, Callable, Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import AsyncSessionLocal
from app.core.errors import AuthenticationError, AuthorizationError, InvalidTokenError
from app.core.security import PURPOSE_AUTH, verify_token
from app.modules.auth.schemas import AuthUser
from app.services.mailer import Mailer, send_mail

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


def get_mailer() -> Mailer:
    return send_mail


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing or invalid Authorization header")

    # token de reset é recusado aqui (WrongPurposeError)
    claims = verify_token(credentials.credentials, PURPOSE_AUTH)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise InvalidTokenError("Invalid token payload")
    if not claims.get("email") or not claims.get("nome") or not claims.get("tipo"):
        raise InvalidTokenError("Invalid token payload")

    return AuthUser(id=user_id, email=claims["email"], nome=claims["nome"], tipo=claims["tipo"])


def require_roles(*roles: str) -> Callable:
    """Autorização por papel (RBAC)."""

    async def _checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.tipo not in roles:
            raise AuthorizationError("Insufficient permissions")
        return user

    return _checker
