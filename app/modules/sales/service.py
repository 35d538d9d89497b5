# app/modules/sales/service.py
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.auth.dependencies import CurrentUser
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.transaction import TransactionCoordinator, TransactionScope
from app.shared.database.models import Sale
from app.shared.query.params import (
    SortDirection, parse_pagination, parse_sort_direction, resolve_sort_field
)
from app.shared.validators import (
    MAX_UNIT_PRICE, ensure_amount_in_range, non_empty, parse_decimal, parse_quantity
)
from .repository import SALE_SORT_FIELDS, SalesRepository
from .schemas import ReportPeriod, SaleCreateRequest

logger = logging.getLogger(__name__)


def serialize_sale(sale: Sale, include_items: bool = True) -> Dict[str, Any]:
    data = {
        "id": sale.id,
        "numero_boleta": sale.numero_boleta,
        "fecha": sale.fecha.isoformat() if sale.fecha else None,
        "vendedor": sale.vendedor,
        "forma_pago": sale.forma_pago,
        "total": float(sale.total),
        "monto_recibido": float(sale.monto_recibido),
        "vuelto": float(sale.vuelto),
    }
    if include_items:
        data["items"] = [
            {
                "id": item.id,
                "sku": item.sku,
                "descripcion": item.descripcion,
                "cantidad": item.cantidad,
                "precio_unitario": float(item.precio_unitario),
                "subtotal": float(item.subtotal)
            }
            for item in sale.items
        ]
        data["cantidad_items"] = len(sale.items)
    return data


def period_start(periodo: ReportPeriod, today: date) -> datetime:
    if periodo == ReportPeriod.dia:
        start = today
    elif periodo == ReportPeriod.semana:
        start = today - timedelta(days=today.weekday())
    elif periodo == ReportPeriod.mes:
        start = today.replace(day=1)
    else:
        start = today.replace(month=1, day=1)
    return datetime.combine(start, time.min)


class SalesService:
    """
    Servicio de ventas del punto de venta: registro atómico, historial y reportes
    """

    def __init__(self, db: Session, coordinator: TransactionCoordinator):
        self.db = db
        self.repository = SalesRepository(db)
        self.coordinator = coordinator

    # ==================== REGISTRO DE VENTAS ====================

    def create_sale(self, sale_data: SaleCreateRequest, current_user: CurrentUser) -> Dict[str, Any]:
        """
        Registrar venta + líneas como una sola unidad: o queda todo o nada
        """
        if not sale_data.items:
            raise ValidationError("La venta debe incluir al menos un producto")

        vendedor = non_empty(sale_data.vendedor) or current_user.email

        def work(tx: TransactionScope) -> Dict[str, Any]:
            repository = SalesRepository(tx.db)

            # 1. Validar y calcular líneas
            lines: List[Dict[str, Any]] = []
            total = Decimal("0")
            for index, item in enumerate(sale_data.items, start=1):
                cantidad = parse_quantity(item.cantidad, f"items[{index}].cantidad")
                precio = parse_decimal(
                    item.precio_unitario, f"items[{index}].precio_unitario",
                    minimum=Decimal("0"), maximum=MAX_UNIT_PRICE
                )
                subtotal = ensure_amount_in_range(precio * cantidad, f"items[{index}].subtotal")
                total = ensure_amount_in_range(total + subtotal, "total")
                lines.append({
                    "sku": item.sku,
                    "descripcion": item.descripcion,
                    "cantidad": cantidad,
                    "precio_unitario": precio,
                    "subtotal": subtotal
                })

            # 2. Monto recibido y vuelto
            if sale_data.monto_recibido is None or sale_data.monto_recibido == "":
                recibido = total
            else:
                recibido = parse_decimal(sale_data.monto_recibido, "monto_recibido", minimum=Decimal("0"))
                if recibido < total:
                    raise ValidationError(
                        "El monto recibido es menor al total de la venta",
                        total=float(total),
                        monto_recibido=float(recibido)
                    )

            # 3. Número de boleta
            numero_boleta = sale_data.numero_boleta
            if numero_boleta is None:
                numero_boleta = repository.next_receipt_number()
            elif repository.receipt_number_taken(numero_boleta):
                raise ConflictError(f"La boleta #{numero_boleta} ya existe")

            # 4. Cabecera y líneas
            tx.checkpoint()
            sale = repository.create_sale({
                "numero_boleta": numero_boleta,
                "fecha": datetime.now(),
                "vendedor": vendedor,
                "forma_pago": sale_data.forma_pago.value,
                "total": total,
                "monto_recibido": recibido,
                "vuelto": recibido - total,
                "usuario_id": current_user.id
            })
            tx.checkpoint()
            repository.insert_sale_items(sale.id, lines)

            return {
                "ventaId": sale.id,
                "numero_boleta": numero_boleta,
                "total": float(total),
                "vuelto": float(recibido - total)
            }

        result = self.coordinator.run_in_transaction(work)
        logger.info(f"✅ Venta {result['ventaId']} registrada (boleta #{result['numero_boleta']})")
        return {"message": "Venta registrada exitosamente", **result}

    # ==================== CONSULTAS ====================

    def get_sale(self, sale_id: int) -> Dict[str, Any]:
        sale = self.repository.get_sale_by_id(sale_id)
        if not sale:
            raise NotFoundError("Venta no encontrada")
        return serialize_sale(sale)

    def get_sales_history(
        self,
        pagina: Optional[str] = None,
        limite: Optional[str] = None,
        fecha_inicio: Optional[date] = None,
        fecha_fin: Optional[date] = None,
        vendedor: Optional[str] = None,
        forma_pago: Optional[str] = None,
        ordenar_por: Optional[str] = None,
        orden: Optional[str] = None
    ) -> Dict[str, Any]:
        # 1. Validar parámetros antes de consultar
        sort_field = resolve_sort_field(ordenar_por, SALE_SORT_FIELDS, default="fecha")
        direction = parse_sort_direction(orden, default=SortDirection.desc)
        pagination = parse_pagination(
            pagina, limite, settings.default_page_size, settings.max_page_size
        )
        if fecha_inicio and fecha_fin and fecha_inicio > fecha_fin:
            raise ValidationError("fecha_inicio no puede ser posterior a fecha_fin")

        # 2. Filtros compartidos por la página y los agregados
        query = self.repository.history_query(
            desde=datetime.combine(fecha_inicio, time.min) if fecha_inicio else None,
            hasta=datetime.combine(fecha_fin + timedelta(days=1), time.min) if fecha_fin else None,
            vendedor=vendedor,
            forma_pago=non_empty(forma_pago)
        ).order_by(sort_field, direction, Sale.id.desc())

        page = self.repository.fetch_page(query, pagination)

        return {
            "ventas": [serialize_sale(s) for s in page["items"]],
            "paginacion": pagination.as_dict(page["total"]),
            "estadisticas": self.repository.get_statistics(query),
            "top_vendedores": self.repository.get_top_sellers(query),
            "formas_pago": self.repository.get_payment_breakdown(query)
        }

    def get_summary_report(self, periodo: str, today: Optional[date] = None) -> Dict[str, Any]:
        try:
            period = ReportPeriod(periodo.lower())
        except ValueError:
            raise ValidationError(
                f"Período inválido: '{periodo}'",
                permitidos=[p.value for p in ReportPeriod]
            )

        desde = period_start(period, today or date.today())
        query = self.repository.history_query(desde=desde)

        return {
            "periodo": period.value,
            "fecha_inicio": desde.isoformat(),
            "estadisticas": self.repository.get_statistics(query),
            "ventas_por_dia": self.repository.get_sales_by_day(desde),
            "productos_mas_vendidos": self.repository.get_best_selling_products(desde)
        }
