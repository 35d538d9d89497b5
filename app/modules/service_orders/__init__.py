# app/modules/service_orders/__init__.py
"""
Módulo de Órdenes de Servicio - Servicio técnico

- Alta y edición atómica de la orden con verificación, fallas, repuestos y fotos
- Reemplazo completo de colecciones en la edición
- Estado de reparación con transiciones controladas

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Lógica de negocio y escritura compuesta
- repository.py: Acceso a datos
- status.py: Resolución y transiciones de estado
- schemas.py: Modelos Pydantic de request
"""

from .router import router as service_orders_router
from .service import ServiceOrderService
from .repository import ServiceOrderRepository

__all__ = [
    "service_orders_router",
    "ServiceOrderService",
    "ServiceOrderRepository"
]
