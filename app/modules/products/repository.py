# app/modules/products/repository.py
from typing import Any, Dict, List, Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session, joinedload

from app.shared.database.models import (
    Brand, OrderPart, PartType, Product, SaleItem, StockMovement
)
from app.shared.query.builder import FilteredQuery, search_rank
from app.shared.query.params import Pagination, SortDirection

PRODUCT_SORT_FIELDS = {
    "nombre": Product.nombre,
    "sku": Product.sku,
    "precio": Product.precio,
    "stock": Product.stock,
    "fecha_creacion": Product.fecha_creacion,
    "fecha_actualizacion": Product.fecha_actualizacion,
}


class ProductRepository:
    """
    Repositorio de productos del catálogo
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== LISTADOS ====================

    def listing_query(
        self,
        busqueda: Optional[str] = None,
        marca_id: Optional[int] = None,
        tipo_id: Optional[int] = None,
        stock_minimo: Optional[int] = None
    ) -> FilteredQuery:
        """Filtros del catálogo; `stock_minimo` devuelve productos con stock ≤ valor"""
        return (
            FilteredQuery(Product, PRODUCT_SORT_FIELDS)
            .search(busqueda, Product.sku, Product.nombre, Product.descripcion)
            .equals(Product.marca_id, marca_id)
            .equals(Product.tipo_id, tipo_id)
            .at_most(Product.stock, stock_minimo)
        )

    def fetch_page(self, query: FilteredQuery, pagination: Pagination) -> Dict[str, Any]:
        stmt, count_stmt = query.build(pagination)
        stmt = stmt.options(joinedload(Product.brand), joinedload(Product.part_type))
        return {
            "items": list(self.db.execute(stmt).scalars().unique()),
            "total": self.db.execute(count_stmt).scalar_one()
        }

    def get_statistics(self, query: FilteredQuery, low_stock_threshold: int) -> Dict[str, Any]:
        row = self.db.execute(
            query.filtered(
                func.count(Product.id),
                func.coalesce(func.sum(Product.stock), 0),
                func.avg(Product.precio),
                func.count(func.distinct(Product.marca_id)),
                func.count(func.distinct(Product.tipo_id)),
                func.coalesce(func.sum(case((Product.stock <= low_stock_threshold, 1), else_=0)), 0)
            )
        ).one()

        return {
            "total_productos": row[0],
            "stock_total": int(row[1]),
            "precio_promedio": round(float(row[2]), 2) if row[2] is not None else 0.0,
            "total_marcas": row[3],
            "total_tipos": row[4],
            "productos_stock_bajo": int(row[5])
        }

    def search_ranked(self, termino: str, limit: int) -> List[Product]:
        query = (
            FilteredQuery(Product, PRODUCT_SORT_FIELDS)
            .search(termino, Product.sku, Product.nombre, Product.descripcion)
            .rank_by(search_rank(termino, Product.sku, Product.nombre))
            .order_by("nombre", SortDirection.asc, Product.id.asc())
        )
        stmt, _ = query.build(Pagination(page=1, page_size=limit))
        stmt = stmt.options(joinedload(Product.brand), joinedload(Product.part_type))
        return list(self.db.execute(stmt).scalars().unique())

    # ==================== CRUD ====================

    def get_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.execute(
            select(Product)
            .options(joinedload(Product.brand), joinedload(Product.part_type))
            .where(Product.id == product_id)
        ).scalar_one_or_none()

    def get_for_update(self, product_id: int) -> Optional[Product]:
        return self.db.execute(
            select(Product).where(Product.id == product_id).with_for_update()
        ).scalar_one_or_none()

    def sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Product.id).where(Product.sku == sku)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return self.db.execute(stmt).first() is not None

    def next_sequence(self) -> int:
        return (self.db.execute(select(func.max(Product.id))).scalar() or 0) + 1

    def brand_name(self, brand_id: Optional[int]) -> Optional[str]:
        if brand_id is None:
            return None
        return self.db.execute(select(Brand.nombre).where(Brand.id == brand_id)).scalar_one_or_none()

    def part_type_name(self, part_type_id: Optional[int]) -> Optional[str]:
        if part_type_id is None:
            return None
        return self.db.execute(select(PartType.nombre).where(PartType.id == part_type_id)).scalar_one_or_none()

    def create(self, data: Dict[str, Any]) -> Product:
        product = Product(**data)
        self.db.add(product)
        self.db.flush()
        return product

    def apply_changes(self, product: Product, changes: Dict[str, Any]) -> Product:
        for field, value in changes.items():
            setattr(product, field, value)
        self.db.flush()
        return product

    def delete(self, product_id: int):
        self.db.execute(delete(StockMovement).where(StockMovement.producto_id == product_id))
        self.db.execute(delete(Product).where(Product.id == product_id))

    # ==================== RELACIONES ====================

    def count_sale_lines(self, sku: str) -> int:
        return self.db.execute(
            select(func.count(SaleItem.id)).where(SaleItem.sku == sku)
        ).scalar_one()

    def count_order_usages(self, product_id: int) -> int:
        return self.db.execute(
            select(func.count(OrderPart.id)).where(OrderPart.repuesto_id == product_id)
        ).scalar_one()

    def add_stock_movement(
        self,
        product_id: int,
        operacion: str,
        cantidad: int,
        stock_anterior: int,
        stock_nuevo: int,
        motivo: Optional[str],
        usuario_id: Optional[int]
    ) -> StockMovement:
        movement = StockMovement(
            producto_id=product_id,
            operacion=operacion,
            cantidad=cantidad,
            stock_anterior=stock_anterior,
            stock_nuevo=stock_nuevo,
            motivo=motivo,
            usuario_id=usuario_id
        )
        self.db.add(movement)
        self.db.flush()
        return movement
