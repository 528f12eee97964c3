from fastapi import APIRouter

from app.api.routes import pms_sync

api_router = APIRouter()

# API routes (all have /api/v1 prefix from main.py)
api_router.include_router(pms_sync.router, prefix="/pms", tags=["pms-sync"])
