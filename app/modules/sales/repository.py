# app/modules/sales/repository.py
from datetime import datetime
from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc, func, insert, select

from app.shared.database.models import Sale, SaleItem
from app.shared.query.builder import FilteredQuery
from app.shared.query.params import Pagination

SALE_SORT_FIELDS = {
    "fecha": Sale.fecha,
    "total": Sale.total,
    "numero_boleta": Sale.numero_boleta,
    "vendedor": Sale.vendedor,
}

class SalesRepository:
    """
    Repositorio para todas las operaciones de datos relacionadas con ventas
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== VENTAS ====================

    def next_receipt_number(self) -> int:
        return (self.db.execute(select(func.max(Sale.numero_boleta))).scalar() or 0) + 1

    def receipt_number_taken(self, numero_boleta: int) -> bool:
        return self.db.execute(
            select(Sale.id).where(Sale.numero_boleta == numero_boleta)
        ).first() is not None

    def create_sale(self, header: Dict[str, Any]) -> Sale:
        """
        Insertar cabecera de venta (flush para obtener el ID, sin commit)
        """
        sale = Sale(**header)
        self.db.add(sale)
        self.db.flush()
        return sale

    def insert_sale_items(self, sale_id: int, items: List[Dict[str, Any]]):
        """
        Insertar todas las líneas en una sola sentencia multi-fila, en orden
        """
        self.db.execute(
            insert(SaleItem),
            [{**item, "venta_id": sale_id} for item in items]
        )

    def get_sale_by_id(self, sale_id: int) -> Optional[Sale]:
        return self.db.execute(
            select(Sale).options(selectinload(Sale.items)).where(Sale.id == sale_id)
        ).scalar_one_or_none()

    # ==================== HISTORIAL ====================

    def history_query(
        self,
        desde: Optional[datetime] = None,
        hasta: Optional[datetime] = None,
        vendedor: Optional[str] = None,
        forma_pago: Optional[str] = None
    ) -> FilteredQuery:
        """`hasta` es exclusivo"""
        query = (
            FilteredQuery(Sale, SALE_SORT_FIELDS)
            .at_least(Sale.fecha, desde)
            .search(vendedor, Sale.vendedor)
            .equals(Sale.forma_pago, forma_pago)
        )
        if hasta is not None:
            query.where(Sale.fecha < hasta)
        return query

    def fetch_page(self, query: FilteredQuery, pagination: Pagination) -> Dict[str, Any]:
        stmt, count_stmt = query.build(pagination)
        return {
            "items": list(self.db.execute(stmt.options(selectinload(Sale.items))).scalars()),
            "total": self.db.execute(count_stmt).scalar_one()
        }

    def get_statistics(self, query: FilteredQuery) -> Dict[str, Any]:
        row = self.db.execute(
            query.filtered(
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total), 0),
                func.avg(Sale.total),
                func.count(func.distinct(Sale.vendedor))
            )
        ).one()

        return {
            "total_ventas": row[0],
            "total_ingresos": round(float(row[1]), 2),
            "promedio_venta": round(float(row[2]), 2) if row[2] is not None else 0.0,
            "total_vendedores": row[3]
        }

    def get_top_sellers(self, query: FilteredQuery, limit: int = 5) -> List[Dict[str, Any]]:
        monto = func.coalesce(func.sum(Sale.total), 0).label("monto")
        results = self.db.execute(
            query.filtered(Sale.vendedor, func.count(Sale.id).label("cantidad"), monto)
            .group_by(Sale.vendedor)
            .order_by(desc("monto"), Sale.vendedor)
            .limit(limit)
        ).all()

        return [
            {
                "vendedor": vendedor,
                "total_ventas": cantidad,
                "total_ventas_monto": round(float(total), 2)
            }
            for vendedor, cantidad, total in results
        ]

    def get_payment_breakdown(self, query: FilteredQuery) -> List[Dict[str, Any]]:
        results = self.db.execute(
            query.filtered(
                Sale.forma_pago,
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total), 0)
            )
            .group_by(Sale.forma_pago)
            .order_by(Sale.forma_pago)
        ).all()

        return [
            {"forma_pago": forma_pago, "cantidad": cantidad, "total": round(float(total), 2)}
            for forma_pago, cantidad, total in results
        ]

    # ==================== REPORTES ====================

    def get_sales_by_day(self, desde: datetime) -> List[Dict[str, Any]]:
        dia = func.date(Sale.fecha).label("dia")
        results = self.db.execute(
            select(dia, func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0))
            .where(Sale.fecha >= desde)
            .group_by(dia)
            .order_by(dia)
        ).all()

        return [
            {"dia": str(day), "total_ventas": cantidad, "total_ingresos": round(float(total), 2)}
            for day, cantidad, total in results
        ]

    def get_best_selling_products(self, desde: datetime, limit: int = 10) -> List[Dict[str, Any]]:
        vendido = func.sum(SaleItem.cantidad).label("vendido")
        results = self.db.execute(
            select(
                SaleItem.sku,
                func.max(SaleItem.descripcion),
                vendido,
                func.coalesce(func.sum(SaleItem.subtotal), 0)
            )
            .join(Sale, Sale.id == SaleItem.venta_id)
            .where(Sale.fecha >= desde)
            .group_by(SaleItem.sku)
            .order_by(desc("vendido"), SaleItem.sku)
            .limit(limit)
        ).all()

        return [
            {
                "sku": sku,
                "descripcion": descripcion,
                "total_vendido": int(cantidad),
                "total_ingresos": round(float(total), 2)
            }
            for sku, descripcion, cantidad, total in results
        ]
