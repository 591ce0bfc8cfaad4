"""API router setup."""
from fastapi import APIRouter

from app.api.routes import counselling, counsellors

api_router = APIRouter(prefix="/api")
api_router.include_router(counsellors.router)
api_router.include_router(counselling.router)
