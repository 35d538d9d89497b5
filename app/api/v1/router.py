# app/api/v1/router.py
from fastapi import APIRouter

from app.config.settings import settings
from app.modules.catalog import catalog_router
from app.modules.products import products_router
from app.modules.sales import sales_router
from app.modules.service_orders import service_orders_router

# Router principal de la API
api_router = APIRouter()

# ==================== MÓDULOS ====================

api_router.include_router(catalog_router)
api_router.include_router(products_router)
api_router.include_router(sales_router)
api_router.include_router(service_orders_router)

# ==================== SALUD ====================

@api_router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version
    }
