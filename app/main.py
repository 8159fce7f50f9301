# app/main.py
import sys
import asyncio

# Event loop compatível no Windows (safe em outros SOs também)
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from contextlib import asynccontextmanager
import json
import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AppError, ConfigurationError
from app.core.logging import setup_logging
from app.api.v1.router import api_router
from app.db.session import engine
from app.db.base import Base

# registra as tabelas no metadata (Registro importa Sala e Usuario)
from app.modules.bookings.models import Registro  # noqa: F401

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _normalize_origins(value) -> list[str]:
    """Aceita lista, JSON string ou CSV e devolve lista de origens."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(o).strip() for o in value if str(o).strip()]
    if isinstance(value, str):
        # tenta JSON primeiro
        try:
            as_json = json.loads(value)
            if isinstance(as_json, (list, tuple)):
                return [str(o).strip() for o in as_json if str(o).strip()]
        except ValueError:
            pass
        # fallback: CSV
        return [o.strip() for o in value.split(",") if o.strip()]
    return [str(value).strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Em desenvolvimento cria as tabelas automaticamente; em produção o schema é
    responsabilidade das migrações. O engine é liberado no shutdown.
    """
    env = (settings.ENVIRONMENT or "").lower().strip()
    if env == "dev":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("Application starting up (env=%s)", env)
    yield
    await engine.dispose()
    logger.info("Application shut down, engine disposed")


# --- App ---
app = FastAPI(title="Reserva de Salas API", lifespan=lifespan)


# --- Erros ---
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, ConfigurationError):
        # detalhe fica no log, não na resposta
        logger.error(
            "CONFIGURATION_ERROR %s %s: %s", request.method, request.url.path, exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": "Erro de configuração do servidor"})

    body = {"error": exc.message}
    if exc.details is not None:
        body["details"] = jsonable_encoder(exc.details)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid body", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("UNHANDLED_ERROR %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- CORS (colocado ANTES dos routers) ---
origins = _normalize_origins(getattr(settings, "CORS_ORIGINS", None))

# Defaults úteis para dev
if not origins:
    origins = [
        "http://localhost:5173",
        "http://localhost:4173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],        # Authorization, Content-Type etc.
)


# Healthcheck simples
@app.get("/health")
async def health():
    return {"ok": True}


app.include_router(api_router)
