"""Integration tests for the /auth endpoints."""
import re
from types import SimpleNamespace
from urllib.parse import unquote

import pytest

from app.core.config import settings
from app.core.security import create_access_token, issue_reset_token, issue_session_token, looks_hashed
from app.services.auth_flow import build_reset_link, infer_app_url
from app.services.credential_store import CredentialStore
from conftest import DEFAULT_PASSWORD, auth_headers


def _token_from_mail(html: str) -> str:
    m = re.search(r"token=([^\"&<]+)", html)
    assert m, html
    return unquote(m.group(1))


async def _login(client, email, password=DEFAULT_PASSWORD):
    return await client.post("/auth/login", json={"email": email, "password": password})


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_public_profile(self, client):
        r = await client.post(
            "/auth/register",
            json={"nome": "Bia", "email": "Bia@Escola.br", "password": "secret123", "tipo": "aluno"},
        )
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "bia@escola.br"
        assert body["tipo"] == "aluno"
        assert body["nome"] == "Bia"
        assert "senha_hash" not in body and "password" not in body

    @pytest.mark.asyncio
    async def test_registered_password_is_hashed(self, client, db):
        await client.post(
            "/auth/register",
            json={"nome": "Caio", "email": "caio@escola.br", "password": "secret123", "tipo": "professor"},
        )
        record = await CredentialStore(db).find_user_by_email("caio@escola.br")
        assert looks_hashed(record.senha)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, make_user):
        await make_user("dup@escola.br")
        r = await client.post(
            "/auth/register",
            json={"nome": "Dup", "email": "dup@escola.br", "password": "secret123", "tipo": "aluno"},
        )
        assert r.status_code == 409
        assert r.json()["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"nome": "X", "email": "x@escola.br", "password": "secret123", "tipo": "admin"},
            {"nome": "X", "email": "x@escola.br", "password": "secret123", "tipo": "coordenador"},
            {"nome": "X", "email": "x@escola.br", "password": "123", "tipo": "aluno"},
            {"nome": "", "email": "x@escola.br", "password": "secret123", "tipo": "aluno"},
            {"nome": "X", "email": "not-an-email", "password": "secret123", "tipo": "aluno"},
        ],
    )
    async def test_invalid_bodies(self, client, body):
        r = await client.post("/auth/register", json=body)
        assert r.status_code == 400
        assert r.json()["error"] == "Invalid body"
        assert r.json()["details"]


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_and_me(self, client, make_user):
        user = await make_user("lia@escola.br", tipo="professor", nome="Lia")
        r = await _login(client, "lia@escola.br")
        assert r.status_code == 200
        body = r.json()
        assert body["user"] == {"id": user.id_usuario, "email": "lia@escola.br", "nome": "Lia", "tipo": "professor"}

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == user.id_usuario

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, client, make_user):
        await make_user("rui@escola.br")
        wrong = await _login(client, "rui@escola.br", "errada")
        unknown = await _login(client, "fantasma@escola.br")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()

    @pytest.mark.asyncio
    async def test_plaintext_password_in_db_is_a_server_error(self, client, make_user, caplog):
        await make_user("plain@escola.br", senha_hash="plaintext123")
        r = await _login(client, "plain@escola.br", "plaintext123")
        assert r.status_code == 500
        assert "token" not in r.json()
        assert "plaintext" not in r.text
        assert "LOGIN_PLAINTEXT_PASSWORD_IN_DB" in caplog.text

    @pytest.mark.asyncio
    async def test_corrupted_bcrypt_value_is_a_server_error(self, client, make_user, caplog):
        await make_user("corrompido@escola.br", senha_hash="$2b$10$garbage")
        r = await _login(client, "corrompido@escola.br")
        assert r.status_code == 500
        assert r.json() == {"error": "Erro de configuração do servidor"}
        assert "LOGIN_MALFORMED_HASH" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_password_field_is_a_server_error(self, client, make_user):
        await make_user("semsenha@escola.br", password=None)
        r = await _login(client, "semsenha@escola.br")
        assert r.status_code == 500

    @pytest.mark.asyncio
    async def test_missing_secret_is_a_server_error(self, client, make_user, monkeypatch):
        await make_user("cfg@escola.br")
        monkeypatch.setattr(settings, "AUTH_SECRET", None)
        r = await _login(client, "cfg@escola.br")
        assert r.status_code == 500
        assert r.json() == {"error": "Erro de configuração do servidor"}

    @pytest.mark.asyncio
    async def test_login_body_validation(self, client):
        r = await client.post("/auth/login", json={"email": "a@b.com"})
        assert r.status_code == 400


class TestSessionGate:
    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        r = await client.get("/auth/me")
        assert r.status_code == 401
        assert r.json()["error"]

    @pytest.mark.asyncio
    async def test_reset_token_cannot_open_a_session(self, client, make_user):
        user = await make_user("reset@escola.br")
        r = await client.get("/auth/me", headers={"Authorization": f"Bearer {issue_reset_token(user.id_usuario)}"})
        assert r.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_session(self, client, make_user):
        user = await make_user("exp@escola.br")
        token = issue_session_token(user, expires_minutes=-1)
        r = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401

    @pytest.mark.asyncio
    async def test_token_without_identity_fields(self, client):
        token = create_access_token({"sub": "1", "typ": "auth"}, expires_minutes=5, secret_key=settings.AUTH_SECRET)
        r = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_change_password(self, client, make_user):
        user = await make_user("troca@escola.br")
        r = await client.post(
            "/auth/change-password",
            json={"current": DEFAULT_PASSWORD, "next": "novasenha"},
            headers=auth_headers(user),
        )
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert (await _login(client, "troca@escola.br")).status_code == 401
        assert (await _login(client, "troca@escola.br", "novasenha")).status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client, make_user):
        user = await make_user("errou@escola.br")
        r = await client.post(
            "/auth/change-password",
            json={"current": "nao-e-essa", "next": "novasenha"},
            headers=auth_headers(user),
        )
        assert r.status_code == 401

    @pytest.mark.asyncio
    async def test_corrupted_stored_hash(self, client, make_user, caplog):
        user = await make_user("hashruim@escola.br", senha_hash="$2b$10$garbage")
        r = await client.post(
            "/auth/change-password",
            json={"current": DEFAULT_PASSWORD, "next": "novasenha"},
            headers=auth_headers(user),
        )
        assert r.status_code == 500
        assert "CHANGE_PASSWORD_MALFORMED_HASH" in caplog.text

    @pytest.mark.asyncio
    async def test_subject_no_longer_exists(self, client):
        ghost = SimpleNamespace(id=9999, email="ghost@escola.br", nome="Ghost", tipo="aluno")
        r = await client.post(
            "/auth/change-password",
            json={"current": DEFAULT_PASSWORD, "next": "novasenha"},
            headers=auth_headers(ghost),
        )
        assert r.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        r = await client.post("/auth/change-password", json={"current": "a", "next": "bbbbbb"})
        assert r.status_code == 401

    @pytest.mark.asyncio
    async def test_next_password_too_short(self, client, make_user):
        user = await make_user("curta@escola.br")
        r = await client.post(
            "/auth/change-password",
            json={"current": DEFAULT_PASSWORD, "next": "123"},
            headers=auth_headers(user),
        )
        assert r.status_code == 400


class TestForgotAndReset:
    @pytest.mark.asyncio
    async def test_unknown_email_is_acknowledged_without_mail(self, client, mailer):
        r = await client.post("/auth/forgot", json={"email": "ninguem@escola.br"})
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_reset_link_uses_origin_header(self, client, make_user, mailer):
        await make_user("esq@escola.br", nome="Esquecida")
        r = await client.post(
            "/auth/forgot", json={"email": "esq@escola.br"}, headers={"Origin": "https://salas.example.com/"}
        )
        assert r.status_code == 200
        assert len(mailer.sent) == 1
        mail = mailer.sent[0]
        assert mail["to"] == "esq@escola.br"
        assert "https://salas.example.com/reset-password?token=" in mail["html"]
        assert "Esquecida" in mail["html"]

    @pytest.mark.asyncio
    async def test_mail_failure_does_not_change_response(self, client, make_user, mailer):
        await make_user("falha@escola.br")
        mailer.fail_with = ConnectionError("smtp down")
        r = await client.post("/auth/forgot", json={"email": "falha@escola.br"})
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_missing_secret_fails_the_same_for_known_and_unknown_email(self, client, make_user, mailer, monkeypatch):
        await make_user("existe@escola.br")
        monkeypatch.setattr(settings, "AUTH_SECRET", None)
        monkeypatch.setattr(settings, "RESET_SECRET", None)
        known = await client.post("/auth/forgot", json={"email": "existe@escola.br"})
        unknown = await client.post("/auth/forgot", json={"email": "naoexiste@escola.br"})
        assert known.status_code == unknown.status_code == 500
        assert known.json() == unknown.json()
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_full_reset_flow(self, client, make_user, mailer, db):
        user = await make_user("fluxo@escola.br")
        await client.post("/auth/forgot", json={"email": "fluxo@escola.br"})
        token = _token_from_mail(mailer.sent[0]["html"])

        r = await client.post("/auth/reset", json={"token": token, "password": "recomeco"})
        assert r.status_code == 200
        assert r.json() == {"ok": True}

        assert (await _login(client, "fluxo@escola.br", "recomeco")).status_code == 200
        record = await CredentialStore(db).find_user_by_id(user.id_usuario)
        assert looks_hashed(record.senha)

    @pytest.mark.asyncio
    async def test_session_token_cannot_reset(self, client, make_user):
        user = await make_user("sessao@escola.br")
        r = await client.post("/auth/reset", json={"token": issue_session_token(user), "password": "recomeco"})
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_garbage_or_expired_token(self, client, make_user):
        user = await make_user("lixo@escola.br")
        r = await client.post("/auth/reset", json={"token": "abc.def.ghi", "password": "recomeco"})
        assert r.status_code == 400
        expired = issue_reset_token(user.id_usuario, expires_minutes=-1)
        r = await client.post("/auth/reset", json={"token": expired, "password": "recomeco"})
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_non_numeric_subject(self, client):
        token = create_access_token({"sub": "abc", "typ": "reset"}, expires_minutes=5, secret_key=settings.AUTH_SECRET)
        r = await client.post("/auth/reset", json={"token": token, "password": "recomeco"})
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_subject_without_user(self, client):
        r = await client.post("/auth/reset", json={"token": issue_reset_token(4242), "password": "recomeco"})
        assert r.status_code == 404


class TestResetLinkHelpers:
    def test_origin_wins(self):
        headers = {"origin": "https://a.example/", "x-forwarded-proto": "https", "x-forwarded-host": "b.example"}
        assert infer_app_url(headers) == "https://a.example"

    def test_forwarded_headers_take_first_value(self):
        headers = {"x-forwarded-proto": "https, http", "x-forwarded-host": "b.example, proxy", "host": "c"}
        assert infer_app_url(headers) == "https://b.example"

    def test_host_header(self):
        assert infer_app_url({"host": "c.example:8080"}, scheme="http") == "http://c.example:8080"

    def test_configured_fallback(self, monkeypatch):
        monkeypatch.setattr(settings, "APP_URL", "https://fallback.example/")
        assert infer_app_url({}) == "https://fallback.example"

    def test_link_format(self):
        assert build_reset_link("https://x.example/", "a.b+c") == "https://x.example/reset-password?token=a.b%2Bc"
