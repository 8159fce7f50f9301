# app/api/v1/router.py
from fastapi import APIRouter
from app.modules.auth.router import router as auth_router
from app.modules.users.router import router as users_router
from app.modules.rooms.router import router as rooms_router
from app.modules.bookings.router import router as bookings_router

api_router = APIRouter()

api_router.include_router(auth_router,     prefix="/auth",     tags=["auth"])
api_router.include_router(rooms_router,    prefix="/rooms",    tags=["rooms"])
api_router.include_router(bookings_router, prefix="/bookings", tags=["bookings"])
api_router.include_router(users_router,    prefix="/users",    tags=["users"])
