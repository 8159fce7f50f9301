# app/services/auth_flow.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    SchemaMismatchError,
    ValidationError,
)
from app.core.security import (
    PURPOSE_RESET,
    hash_password,
    issue_reset_token,
    issue_session_token,
    looks_hashed,
    reset_secret,
    verify_password,
    verify_token,
)
from app.modules.auth.schemas import (
    AuthUser,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetRequest,
)
from app.modules.users.models import Usuario
from app.services.credential_store import CredentialRecord, CredentialStore
from app.services.mailer import Mailer

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Redefinição de senha"


def _first(value: Optional[str]) -> str:
    return (value or "").split(",")[0].strip()


def infer_app_url(headers: Mapping[str, str], scheme: str = "http") -> str:
    """
    Origem do front para o link de redefinição:
    Origin -> X-Forwarded-Proto/Host -> Host -> settings.APP_URL.
    """
    origin = headers.get("origin")
    if origin:
        return origin.rstrip("/")

    xf_proto = _first(headers.get("x-forwarded-proto"))
    xf_host = _first(headers.get("x-forwarded-host"))
    if xf_proto and xf_host:
        return f"{xf_proto}://{xf_host}"

    host = headers.get("host")
    if host:
        return f"{scheme}://{host}"

    return settings.APP_URL.rstrip("/")


def build_reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/reset-password?{urlencode({'token': token})}"


def _reset_email_html(nome: Optional[str], link: str) -> str:
    return (
        f"<p>Olá {nome or ''},</p>"
        "<p>Para redefinir sua senha, clique no link abaixo (válido por 30 minutos):</p>"
        f'<p><a href="{link}" target="_blank">{link}</a></p>'
    )


def _require_hashed(record: CredentialRecord, event: str) -> str:
    stored = record.senha
    if not stored or not isinstance(stored, str):
        logger.warning("%s_NO_PASSWORD_FIELD user_id=%s", event, record.id)
        raise ConfigurationError("Configuração de senha ausente para este usuário")
    if not looks_hashed(stored):
        logger.warning("%s_PLAINTEXT_PASSWORD_IN_DB user_id=%s", event, record.id)
        raise ConfigurationError("Senha no banco não está com hash")
    return stored


async def _password_matches(plain: str, stored: str, record: CredentialRecord, event: str) -> bool:
    try:
        return await run_in_threadpool(verify_password, plain, stored)
    except ValueError:
        # prefixo bcrypt válido mas corpo corrompido (salt/checksum)
        logger.warning("%s_MALFORMED_HASH user_id=%s", event, record.id)
        raise ConfigurationError("Hash de senha inválido no banco")


# =============================
# register / login
# =============================

async def register(db: AsyncSession, payload: RegisterRequest) -> dict[str, Any]:
    email = payload.email.strip().lower()
    store = CredentialStore(db)
    if await store.find_user_by_email(email):
        raise ConflictError("E-mail já cadastrado.")

    user = Usuario(
        nome=payload.nome.strip(),
        email=email,
        senha_hash=await run_in_threadpool(hash_password, payload.password),
        tipo=payload.tipo,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("E-mail já cadastrado.")
    await db.refresh(user)

    logger.info("REGISTER_OK user_id=%s tipo=%s", user.id_usuario, user.tipo)
    return {"id": user.id_usuario, "email": user.email, "nome": user.nome, "tipo": user.tipo}


async def login(db: AsyncSession, payload: LoginRequest) -> dict[str, Any]:
    store = CredentialStore(db)
    record = await store.find_user_by_email(payload.email.strip().lower())
    # não diferencia "usuário inexistente" de "senha errada"
    if not record:
        raise InvalidCredentialsError()

    stored = _require_hashed(record, "LOGIN")
    ok = await _password_matches(payload.password, stored, record, "LOGIN")
    if not ok:
        raise InvalidCredentialsError()

    token = issue_session_token(record)
    return {"token": token, "user": record.public()}


# =============================
# change-password / forgot / reset
# =============================

async def change_password(db: AsyncSession, me: AuthUser, payload: ChangePasswordRequest) -> None:
    store = CredentialStore(db)
    record = await store.find_user_by_id(me.id)
    if not record:
        raise NotFoundError("Usuário não encontrado")

    stored = _require_hashed(record, "CHANGE_PASSWORD")
    ok = await _password_matches(payload.current, stored, record, "CHANGE_PASSWORD")
    if not ok:
        raise InvalidCredentialsError("Senha atual inválida")

    new_hash = await run_in_threadpool(hash_password, payload.next)
    try:
        info = await store.update_password(record.id, new_hash)
    except SchemaMismatchError:
        await db.rollback()
        raise NotFoundError("Usuário não encontrado")
    await db.commit()
    logger.info(
        "CHANGE_PASSWORD_OK user_id=%s field=%s column=%s",
        record.id, info.matched_field, info.matched_column,
    )


async def forgot_password(
    db: AsyncSession,
    email: str,
    mailer: Mailer,
    headers: Mapping[str, str],
    scheme: str = "http",
) -> None:
    # sem segredo falha antes da busca, exista o e-mail ou não
    reset_secret()
    store = CredentialStore(db)
    record = await store.find_user_by_email(email.strip().lower())
    # por segurança a resposta é sempre a mesma
    if not record or record.id is None:
        return

    token = issue_reset_token(record.id)
    link = build_reset_link(infer_app_url(headers, scheme), token)

    try:
        await run_in_threadpool(mailer, record.email, RESET_SUBJECT, _reset_email_html(record.nome, link))
    except Exception:
        logger.exception("RESET_MAIL_FAILED user_id=%s", record.id)


async def reset_password(db: AsyncSession, payload: ResetRequest) -> None:
    try:
        claims = verify_token(payload.token, PURPOSE_RESET)
    except AuthenticationError as e:
        logger.warning("RESET_VERIFY_FAILED reason=%s", e.message)
        raise ValidationError("Token inválido ou expirado")

    try:
        uid = int(claims.get("sub"))
    except (TypeError, ValueError):
        raise ValidationError("Token inválido")
    if uid <= 0:
        raise ValidationError("Token inválido")

    new_hash = await run_in_threadpool(hash_password, payload.password)
    store = CredentialStore(db)
    try:
        info = await store.update_password(uid, new_hash)
    except SchemaMismatchError:
        await db.rollback()
        logger.warning("RESET_UPDATE_FAILED user_id=%s", uid)
        raise NotFoundError("Usuário não encontrado")
    await db.commit()
    logger.info("RESET_OK user_id=%s field=%s column=%s", uid, info.matched_field, info.matched_column)

    # pós-checagem: relê e confere se ficou com hash
    reloaded = await store.find_user_by_id(uid)
    if not reloaded or not looks_hashed(reloaded.senha):
        logger.warning("RESET_POSTCHECK_FAILED user_id=%s", uid)
