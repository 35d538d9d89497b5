# app/modules/products/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import CurrentUser, get_current_user, require_roles
from app.core.transaction import TransactionCoordinator, get_transaction_coordinator
from .schemas import ProductCreateRequest, ProductUpdateRequest, StockUpdateRequest
from .service import ProductService

router = APIRouter(prefix="/productos", tags=["Productos"])


def get_product_service(
    db: Session = Depends(get_db),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
) -> ProductService:
    return ProductService(db, coordinator)

# ==================== CONSULTAS ====================

@router.get("")
def list_products(
    pagina: Optional[str] = Query(None, description="Número de página (desde 1)"),
    limite: Optional[str] = Query(None, description="Productos por página"),
    por_pagina: Optional[str] = Query(None, description="Alias de 'limite'"),
    busqueda: Optional[str] = Query(None, description="Texto en SKU, nombre o descripción"),
    marca_id: Optional[int] = Query(None, description="Filtrar por marca"),
    tipo_id: Optional[int] = Query(None, description="Filtrar por tipo de repuesto"),
    stock_minimo: Optional[int] = Query(None, description="Productos con stock menor o igual"),
    ordenar_por: Optional[str] = Query(None, description="nombre, sku, precio, stock, fecha_creacion, fecha_actualizacion"),
    orden: Optional[str] = Query(None, description="asc o desc"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    """
    Listado paginado del catálogo con filtros y estadísticas del conjunto filtrado
    """
    return service.list_products(
        pagina=pagina,
        limite=limite if limite is not None else por_pagina,
        busqueda=busqueda,
        marca_id=marca_id,
        tipo_id=tipo_id,
        stock_minimo=stock_minimo,
        ordenar_por=ordenar_por,
        orden=orden
    )


@router.get("/buscar/{termino}")
def search_products(
    termino: str,
    limite: Optional[str] = Query(None, description="Máximo de resultados"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    """
    Búsqueda con relevancia: SKU exacto primero, luego coincidencias por
    prefijo/subcadena en SKU o nombre, luego el resto; alfabético dentro de cada grupo.
    """
    return service.search_products(termino, limite)


@router.get("/{product_id}")
def get_product(
    product_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    return service.get_product(product_id)

# ==================== ESCRITURAS ====================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    return service.create_product(data)


@router.put("/{product_id}")
def update_product(
    product_id: int,
    data: ProductUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    """
    Actualización parcial: los campos omitidos conservan su valor actual
    """
    return service.update_product(product_id, data, usuario_id=current_user.id)


@router.patch("/{product_id}/stock")
def update_stock(
    product_id: int,
    data: StockUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service)
):
    """
    Ajuste manual de stock (add / subtract / set) con registro en bitácora
    """
    return service.update_stock(product_id, data, usuario_id=current_user.id)


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    current_user: CurrentUser = Depends(require_roles(["administrador"])),
    service: ProductService = Depends(get_product_service)
):
    return service.delete_product(product_id)
