from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_mailer
from app.services import auth_flow
from app.services.mailer import Mailer
from .schemas import (
    AuthUser,
    ChangePasswordRequest,
    ForgotRequest,
    LoginOut,
    LoginRequest,
    OkOut,
    RegisterRequest,
    ResetRequest,
)

router = APIRouter()


@router.post("/register", response_model=AuthUser, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return await auth_flow.register(db, payload)


@router.post("/login", response_model=LoginOut)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await auth_flow.login(db, payload)


@router.get("/me", response_model=AuthUser)
async def me(user: AuthUser = Depends(get_current_user)):
    return user


@router.post("/change-password", response_model=OkOut)
async def change_password(
    payload: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    await auth_flow.change_password(db, user, payload)
    return OkOut()


@router.post("/forgot", response_model=OkOut)
async def forgot(
    payload: ForgotRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    await auth_flow.forgot_password(db, payload.email, mailer, request.headers, request.url.scheme)
    return OkOut()


@router.post("/reset", response_model=OkOut)
async def reset(payload: ResetRequest, db: AsyncSession = Depends(get_db)):
    await auth_flow.reset_password(db, payload)
    return OkOut()
