# app/modules/sales/router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import CurrentUser, get_current_user
from app.core.transaction import TransactionCoordinator, get_transaction_coordinator
from .schemas import SaleCreateRequest
from .service import SalesService

router = APIRouter(prefix="/ventas", tags=["Ventas"])


def get_sales_service(
    db: Session = Depends(get_db),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
) -> SalesService:
    return SalesService(db, coordinator)

# ==================== REGISTRO DE VENTAS ====================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_sale(
    sale_data: SaleCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SalesService = Depends(get_sales_service)
):
    """
    Registrar venta completa con sus líneas de detalle

    Incluye:
    - Fecha/hora automática y número de boleta correlativo
    - Subtotales y total calculados en el servidor
    - Vuelto a partir del monto recibido
    - Todo o nada: si una línea es inválida no se guarda la venta
    """
    return service.create_sale(sale_data, current_user)

# ==================== CONSULTAS ====================

@router.get("/historial")
def get_sales_history(
    pagina: Optional[str] = Query(None, description="Número de página (desde 1)"),
    limite: Optional[str] = Query(None, description="Ventas por página"),
    fecha_inicio: Optional[date] = Query(None, description="Desde (YYYY-MM-DD)"),
    fecha_fin: Optional[date] = Query(None, description="Hasta, inclusive (YYYY-MM-DD)"),
    vendedor: Optional[str] = Query(None, description="Nombre del vendedor (parcial)"),
    forma_pago: Optional[str] = Query(None, description="Forma de pago exacta"),
    ordenar_por: Optional[str] = Query(None, description="fecha, total, numero_boleta o vendedor"),
    orden: Optional[str] = Query(None, description="asc o desc"),
    current_user: CurrentUser = Depends(get_current_user),
    service: SalesService = Depends(get_sales_service)
):
    """
    Historial paginado con estadísticas, top vendedores y desglose por forma de pago
    """
    return service.get_sales_history(
        pagina=pagina,
        limite=limite,
        fecha_inicio=fecha_inicio,
        fecha_fin=fecha_fin,
        vendedor=vendedor,
        forma_pago=forma_pago,
        ordenar_por=ordenar_por,
        orden=orden
    )


@router.get("/reporte-resumen/{periodo}")
def get_summary_report(
    periodo: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: SalesService = Depends(get_sales_service)
):
    """
    Resumen del período (dia, semana, mes, anio): ventas por día y productos más vendidos
    """
    return service.get_summary_report(periodo)


@router.get("/{sale_id}")
def get_sale(
    sale_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: SalesService = Depends(get_sales_service)
):
    return service.get_sale(sale_id)
