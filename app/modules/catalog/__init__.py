# app/modules/catalog/__init__.py
"""
Módulo de Catálogo - Marcas, tipos de repuesto y tipos de equipo

- Listado y alta de cada taxonomía
- Vinculación automática tipo de repuesto ↔ todas las marcas
- Búsqueda-o-creación por nombre usada por las órdenes de servicio
"""

from .router import router as catalog_router
from .service import CatalogService
from .repository import CatalogRepository, find_or_create_brand, find_or_create_equipment_type

__all__ = [
    "catalog_router",
    "CatalogService",
    "CatalogRepository",
    "find_or_create_brand",
    "find_or_create_equipment_type"
]
