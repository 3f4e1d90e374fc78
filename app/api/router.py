from fastapi import APIRouter
from app.api.endpoints import orders, images, health

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(orders.router)
api_router.include_router(images.router)
api_router.include_router(health.router)
