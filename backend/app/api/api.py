from fastapi import APIRouter
from app.api.endpoints import health, save

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(save.router, tags=["save"])
