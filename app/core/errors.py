# app/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class AppError(RuntimeError):
    """Erro de domínio com status HTTP associado."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400


class InvalidTimestampError(ValidationError):
    pass


class InvalidRangeError(ValidationError):
    pass


class AuthenticationError(AppError):
    status_code = 401


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Credenciais inválidas", details: Optional[Any] = None):
        super().__init__(message, details)


class InvalidTokenError(AuthenticationError):
    pass


class WrongPurposeError(AuthenticationError):
    pass


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ConfigurationError(AppError):
    status_code = 500


class SchemaMismatchError(AppError):
    # nenhuma combinação identificador x coluna de senha funcionou;
    # os fluxos convertem em NotFoundError
    status_code = 404
