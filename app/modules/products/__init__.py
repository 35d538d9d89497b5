# app/modules/products/__init__.py
"""
Módulo de Productos - Catálogo de repuestos y accesorios

- Listado paginado con filtros (búsqueda, marca, tipo, stock bajo) y estadísticas
- Búsqueda con relevancia por SKU / nombre
- Alta, edición, eliminación y ajustes manuales de stock

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Lógica de negocio
- repository.py: Acceso a datos
- schemas.py: Modelos Pydantic de request
"""

from .router import router as products_router
from .service import ProductService
from .repository import ProductRepository

__all__ = [
    "products_router",
    "ProductService",
    "ProductRepository"
]
