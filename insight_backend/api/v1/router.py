# insight_backend/api/v1/router.py

from fastapi import APIRouter
from .endpoints import data

api_router = APIRouter(prefix="/api/v1")

# POST /api/v1/data/question ...
api_router.include_router(data.router, prefix="/data", tags=["data"])
