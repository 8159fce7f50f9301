# app/core/security.py
import hashlib
import hmac
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import ConfigurationError, InvalidTokenError, WrongPurposeError

logger = logging.getLogger(__name__)

SECRET_ALG = "HS256"
PURPOSE_AUTH = "auth"
PURPOSE_RESET = "reset"

BCRYPT_PREFIX = re.compile(r"^\$2[aby]\$")
MIN_BCRYPT_ROUNDS = 10

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=max(settings.BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS),
)


# =============================
# Senhas
# =============================

def looks_hashed(value: Any) -> bool:
    return isinstance(value, str) and bool(BCRYPT_PREFIX.match(value))


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, stored: str) -> bool:
    """
    Confere a senha. Hash bcrypt -> verify do passlib.
    Qualquer outra coisa é tratada como digest SHA-256 legado e registrada como
    problema de higiene de dados.
    """
    if looks_hashed(stored):
        return pwd_context.verify(plain, stored)

    logger.warning("PASSWORD_LEGACY_DIGEST stored password is not bcrypt-formatted")
    digest = hashlib.sha256(plain.encode("utf-8")).hexdigest()
    return hmac.compare_digest(digest, stored or "")


# =============================
# JWT
# =============================

def _auth_secret() -> str:
    if not settings.AUTH_SECRET:
        raise ConfigurationError("AUTH_SECRET não configurado")
    return settings.AUTH_SECRET


def reset_secret() -> str:
    secret = settings.RESET_SECRET or settings.AUTH_SECRET
    if not secret:
        raise ConfigurationError("RESET_SECRET não configurado")
    return secret


def _secret_for(purpose: str) -> str:
    return reset_secret() if purpose == PURPOSE_RESET else _auth_secret()


def create_access_token(
    data: dict[str, Any],
    expires_minutes: int,
    secret_key: str,
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({"iat": now, "exp": now + timedelta(minutes=expires_minutes)})
    return jwt.encode(to_encode, secret_key, algorithm=SECRET_ALG)


def decode_token(token: str, secret_key: str) -> dict[str, Any]:
    return jwt.decode(token, secret_key, algorithms=[SECRET_ALG])


def issue_session_token(user: Any, expires_minutes: Optional[int] = None) -> str:
    """Token de sessão (8h) com identidade desnormalizada para autorização sem ida ao banco."""
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "nome": user.nome,
        "tipo": user.tipo,
        "typ": PURPOSE_AUTH,
    }
    return create_access_token(
        claims,
        expires_minutes=expires_minutes if expires_minutes is not None else settings.SESSION_TOKEN_EXPIRE_MINUTES,
        secret_key=_auth_secret(),
    )


def issue_reset_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    return create_access_token(
        {"sub": str(user_id), "typ": PURPOSE_RESET},
        expires_minutes=expires_minutes if expires_minutes is not None else settings.RESET_TOKEN_EXPIRE_MINUTES,
        secret_key=reset_secret(),
    )


def verify_token(token: str, expected_purpose: str) -> dict[str, Any]:
    secret = _secret_for(expected_purpose)
    try:
        claims = decode_token(token, secret)
    except JWTError as e:
        raise InvalidTokenError("Token inválido ou expirado") from e

    if not claims.get("sub") or not claims.get("typ"):
        raise InvalidTokenError("Token malformado")
    if claims["typ"] != expected_purpose:
        raise WrongPurposeError("Tipo de token inválido")
    return claims
