# app/modules/sales/__init__.py
"""
Módulo de Ventas - Punto de venta

- Registro atómico de venta + líneas de detalle
- Historial paginado con filtros, estadísticas y top vendedores
- Reporte resumido por período

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Lógica de negocio
- repository.py: Acceso a datos
- schemas.py: Modelos Pydantic de request
"""

from .router import router as sales_router
from .service import SalesService
from .repository import SalesRepository

__all__ = [
    "sales_router",
    "SalesService",
    "SalesRepository"
]
