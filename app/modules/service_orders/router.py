# app/modules/service_orders/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import CurrentUser, get_current_user
from app.core.transaction import TransactionCoordinator, get_transaction_coordinator
from .schemas import ServiceOrderCreateRequest, ServiceOrderUpdateRequest, StatusUpdateRequest
from .service import ServiceOrderService

router = APIRouter(prefix="/ordenes-servicio", tags=["Órdenes de Servicio"])


def get_service_order_service(
    db: Session = Depends(get_db),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
) -> ServiceOrderService:
    return ServiceOrderService(db, coordinator)

# ==================== ESCRITURA ====================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: ServiceOrderCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    """
    Registrar orden de servicio técnico

    Incluye en una sola transacción:
    - Cabecera con cliente, equipo y montos (total = costo - abono)
    - Verificación de recepción, fallas, repuestos y fotos
    - Marca y tipo de equipo se crean si llegan por nombre y no existen
    """
    return service.create_order(order_data)


@router.put("/{order_id}")
def update_order(
    order_id: int,
    order_data: ServiceOrderUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    """
    Actualizar orden: cada colección enviada reemplaza a la anterior
    """
    return service.update_order(order_id, order_data)


@router.patch("/{order_id}/estado")
def update_order_status(
    order_id: int,
    status_data: StatusUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    return service.update_status(order_id, status_data)


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    return service.delete_order(order_id)

# ==================== CONSULTAS ====================

@router.get("")
def list_orders(
    pagina: Optional[str] = Query(None, description="Número de página (desde 1)"),
    limite: Optional[str] = Query(None, description="Órdenes por página"),
    busqueda: Optional[str] = Query(None, description="Código, cliente o teléfono"),
    estado: Optional[str] = Query(None, description="pendiente, en_proceso o terminado"),
    marca_id: Optional[int] = Query(None, description="Filtrar por marca"),
    ordenar_por: Optional[str] = Query(None, description="fecha_creacion, codigo, cliente_nombre o total"),
    orden: Optional[str] = Query(None, description="asc o desc"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    """
    Listado paginado de órdenes con su estado de reparación
    """
    return service.list_orders(
        pagina=pagina,
        limite=limite,
        busqueda=busqueda,
        estado=estado,
        marca_id=marca_id,
        ordenar_por=ordenar_por,
        orden=orden
    )


@router.get("/{order_id}")
def get_order(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ServiceOrderService = Depends(get_service_order_service)
):
    """
    Detalle completo: verificación, fallas, repuestos, fotos y estado derivado
    """
    return service.get_order(order_id)
