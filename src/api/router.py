from fastapi import APIRouter

from src.api.credits.router import router as credits_router
from src.api.evaluation.router import router as evaluation_router
from src.api.health.router import root_router
from src.api.health.router import router as health_router
from src.api.keys.router import router as keys_router
from src.api.practice.router import router as practice_router
from src.api.speaking.router import router as speaking_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Include domain routers
v1_router.include_router(practice_router)
v1_router.include_router(evaluation_router)
v1_router.include_router(speaking_router)
v1_router.include_router(credits_router)
v1_router.include_router(keys_router)

# Main API router
api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(health_router)
api_router.include_router(v1_router)
