from fastapi import APIRouter

from src.api.v1.endpoints import files, health

v1_router = APIRouter()
v1_router.include_router(health.router, tags=["health"])
v1_router.include_router(files.router, tags=["files"])
