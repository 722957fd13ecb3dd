from fastapi import APIRouter

from .endpoints import sessions, proctoring, health

api_router = APIRouter()

api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(proctoring.router, prefix="/proctoring", tags=["proctoring"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
