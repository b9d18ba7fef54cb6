# Fichier: canoncore/backend/app/api/v2/api.py
from fastapi import APIRouter
from .endpoints import (
    content_router,
    progress_router,
    relationship_router,
)

api_router = APIRouter()

api_router.include_router(relationship_router.router, prefix="/relationships", tags=["Relationships"])
api_router.include_router(progress_router.router, prefix="/progress", tags=["Progress"])
api_router.include_router(content_router.router, prefix="/content", tags=["Content"])
