# app/modules/service_orders/repository.py
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session, joinedload

from app.shared.database.models import (
    Brand, EquipmentCheck, EquipmentType, Fault, OrderPart, OrderPhoto,
    Product, ServiceOrder
)
from app.shared.query.builder import FilteredQuery
from app.shared.query.params import Pagination

# Relaciones hijas en el orden en que se insertan / reemplazan
CHILD_RELATIONS = {
    "verificaciones": EquipmentCheck,
    "fallas": Fault,
    "repuestos": OrderPart,
    "fotos": OrderPhoto,
}

ORDER_SORT_FIELDS = {
    "fecha_creacion": ServiceOrder.fecha_creacion,
    "codigo": ServiceOrder.codigo,
    "cliente_nombre": ServiceOrder.cliente_nombre,
    "total": ServiceOrder.total,
}


class ServiceOrderRepository:
    """
    Acceso a datos de órdenes de servicio y sus cuatro colecciones hijas
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== CABECERA ====================

    def get_order(self, order_id: int) -> Optional[ServiceOrder]:
        return self.db.execute(
            select(ServiceOrder)
            .options(joinedload(ServiceOrder.brand), joinedload(ServiceOrder.equipment_type))
            .where(ServiceOrder.id == order_id)
        ).scalar_one_or_none()

    def get_for_update(self, order_id: int) -> Optional[ServiceOrder]:
        return self.db.execute(
            select(ServiceOrder).where(ServiceOrder.id == order_id).with_for_update()
        ).scalar_one_or_none()

    def codigo_taken(self, codigo: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(ServiceOrder.id).where(ServiceOrder.codigo == codigo)
        if exclude_id is not None:
            stmt = stmt.where(ServiceOrder.id != exclude_id)
        return self.db.execute(stmt).first() is not None

    def create_order(self, header: Dict[str, Any]) -> ServiceOrder:
        order = ServiceOrder(**header)
        self.db.add(order)
        self.db.flush()  # Obtener ID sin hacer commit aún
        return order

    def update_order(self, order: ServiceOrder, changes: Dict[str, Any]) -> ServiceOrder:
        for field, value in changes.items():
            setattr(order, field, value)
        self.db.flush()
        return order

    def delete_order(self, order_id: int):
        """Borrado explícito de las cuatro tablas hijas y luego la cabecera"""
        for model in CHILD_RELATIONS.values():
            self.db.execute(delete(model).where(model.orden_id == order_id))
        self.db.execute(delete(ServiceOrder).where(ServiceOrder.id == order_id))

    # ==================== HIJOS ====================

    def insert_children(self, relation: str, order_id: int, rows: List[Dict[str, Any]]):
        """Una sentencia multi-fila por relación; filas en el orden recibido"""
        if not rows:
            return
        model = CHILD_RELATIONS[relation]
        self.db.execute(insert(model), [{**row, "orden_id": order_id} for row in rows])

    def delete_children(self, relation: str, order_id: int) -> int:
        model = CHILD_RELATIONS[relation]
        result = self.db.execute(delete(model).where(model.orden_id == order_id))
        return result.rowcount

    def missing_products(self, product_ids: Iterable[int]) -> Set[int]:
        wanted = set(product_ids)
        if not wanted:
            return set()
        found = set(self.db.execute(select(Product.id).where(Product.id.in_(wanted))).scalars())
        return wanted - found

    def reference_exists(self, model, reference_id: int) -> bool:
        return self.db.get(model, reference_id) is not None

    def brand_exists(self, brand_id: int) -> bool:
        return self.reference_exists(Brand, brand_id)

    def equipment_type_exists(self, equipment_type_id: int) -> bool:
        return self.reference_exists(EquipmentType, equipment_type_id)

    # ==================== LECTURAS ====================

    def get_checks(self, order_id: int) -> List[EquipmentCheck]:
        return list(self.db.execute(
            select(EquipmentCheck).where(EquipmentCheck.orden_id == order_id).order_by(EquipmentCheck.id)
        ).scalars())

    def get_faults(self, order_id: int) -> List[Fault]:
        return list(self.db.execute(
            select(Fault).where(Fault.orden_id == order_id).order_by(Fault.posicion, Fault.id)
        ).scalars())

    def get_parts(self, order_id: int) -> List[OrderPart]:
        return list(self.db.execute(
            select(OrderPart)
            .options(joinedload(OrderPart.product))
            .where(OrderPart.orden_id == order_id)
            .order_by(OrderPart.id)
        ).scalars())

    def get_photos(self, order_id: int) -> List[OrderPhoto]:
        return list(self.db.execute(
            select(OrderPhoto).where(OrderPhoto.orden_id == order_id).order_by(OrderPhoto.id)
        ).scalars())

    def get_faults_by_order(self, order_ids: List[int]) -> Dict[int, List[Fault]]:
        grouped: Dict[int, List[Fault]] = defaultdict(list)
        if not order_ids:
            return grouped
        for fault in self.db.execute(
            select(Fault).where(Fault.orden_id.in_(order_ids)).order_by(Fault.orden_id, Fault.posicion, Fault.id)
        ).scalars():
            grouped[fault.orden_id].append(fault)
        return grouped

    # ==================== LISTADO ====================

    def listing_query(
        self,
        busqueda: Optional[str] = None,
        estado: Optional[str] = None,
        marca_id: Optional[int] = None
    ) -> FilteredQuery:
        return (
            FilteredQuery(ServiceOrder, ORDER_SORT_FIELDS)
            .search(busqueda, ServiceOrder.codigo, ServiceOrder.cliente_nombre, ServiceOrder.cliente_telefono)
            .equals(ServiceOrder.estado, estado)
            .equals(ServiceOrder.marca_id, marca_id)
        )

    def fetch_page(self, query: FilteredQuery, pagination: Pagination) -> Dict[str, Any]:
        stmt, count_stmt = query.build(pagination)
        stmt = stmt.options(joinedload(ServiceOrder.brand), joinedload(ServiceOrder.equipment_type))
        return {
            "items": list(self.db.execute(stmt).scalars()),
            "total": self.db.execute(count_stmt).scalar_one()
        }
