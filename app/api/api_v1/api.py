from fastapi import APIRouter

from app.api.api_v1.endpoints import (
    inventory,
    csv_upload,
    configuration
)

api_router = APIRouter()

api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(csv_upload.router, prefix="/csv-upload", tags=["csv-upload"])
api_router.include_router(configuration.router, prefix="/configuration", tags=["configuration"])
