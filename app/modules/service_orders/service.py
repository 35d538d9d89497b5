# app/modules/service_orders/service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.transaction import TransactionCoordinator, TransactionScope
from app.modules.catalog.repository import find_or_create_brand, find_or_create_equipment_type
from app.shared.database.models import ServiceOrder
from app.shared.query.params import (
    SortDirection, parse_pagination, parse_sort_direction, resolve_sort_field
)
from app.shared.validators import (
    MAX_UNIT_PRICE, ensure_amount_in_range, non_empty, parse_decimal, parse_quantity
)
from .repository import CHILD_RELATIONS, ORDER_SORT_FIELDS, ServiceOrderRepository
from .schemas import ServiceOrderCreateRequest, ServiceOrderUpdateRequest, StatusUpdateRequest
from .status import DEFAULT_STATUS, RepairStatus, ensure_transition, reported_status

logger = logging.getLogger(__name__)

# Columnas que un PUT puede modificar directamente (merge tipo COALESCE)
MUTABLE_TEXT_COLUMNS = (
    "cliente_nombre", "cliente_telefono", "cliente_email",
    "modelo", "diagnostico", "observaciones",
)


def build_order_code(order_id: int, fecha: datetime) -> str:
    return f"OS-{fecha:%Y%m%d}-{order_id:05d}"


def _money(value) -> float:
    return float(value) if value is not None else 0.0


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_order_summary(order: ServiceOrder, faults: List[Any]) -> Dict[str, Any]:
    return {
        "id": order.id,
        "codigo": order.codigo,
        "cliente_nombre": order.cliente_nombre,
        "cliente_telefono": order.cliente_telefono,
        "cliente_email": order.cliente_email,
        "marca_id": order.marca_id,
        "marca": order.brand.nombre if order.brand else None,
        "tipo_equipo_id": order.tipo_equipo_id,
        "tipo_equipo": order.equipment_type.nombre if order.equipment_type else None,
        "modelo": order.modelo,
        "costo_reparacion": _money(order.costo_reparacion),
        "abono": _money(order.abono),
        "total": _money(order.total),
        "estado": order.estado,
        "estado_reparacion": reported_status(order.estado, faults),
        "fecha_creacion": _iso(order.fecha_creacion),
        "fecha_actualizacion": _iso(order.fecha_actualizacion)
    }


class ServiceOrderService:
    """
    Órdenes de servicio técnico: escritura compuesta (cabecera + verificación,
    fallas, repuestos y fotos) siempre dentro de una única transacción.
    """

    def __init__(self, db: Session, coordinator: TransactionCoordinator):
        self.db = db
        self.repository = ServiceOrderRepository(db)
        self.coordinator = coordinator

    # ==================== CREACIÓN ====================

    def create_order(self, data: ServiceOrderCreateRequest) -> Dict[str, Any]:
        def work(tx: TransactionScope) -> Dict[str, Any]:
            repository = ServiceOrderRepository(tx.db)

            # 1. Taxonomías (búsqueda-o-creación por nombre)
            marca_id = self._resolve_reference(
                tx.db, repository.brand_exists, find_or_create_brand,
                data.marca_id, data.marca, "Marca"
            )
            tipo_equipo_id = self._resolve_reference(
                tx.db, repository.equipment_type_exists, find_or_create_equipment_type,
                data.tipo_equipo_id, data.tipo_equipo, "Tipo de equipo"
            )

            # 2. Montos
            costo = parse_decimal(
                data.costo_reparacion if data.costo_reparacion is not None else 0, "costo_reparacion"
            )
            abono = parse_decimal(data.abono if data.abono is not None else 0, "abono")

            codigo = non_empty(data.codigo)
            if codigo and repository.codigo_taken(codigo):
                raise ConflictError(f"La orden '{codigo}' ya existe")

            # 3. Cabecera
            tx.checkpoint()
            now = datetime.now()
            order = repository.create_order({
                "codigo": codigo,
                "cliente_nombre": data.cliente_nombre.strip(),
                "cliente_telefono": non_empty(data.cliente_telefono),
                "cliente_email": non_empty(data.cliente_email),
                "marca_id": marca_id,
                "tipo_equipo_id": tipo_equipo_id,
                "modelo": non_empty(data.modelo),
                "diagnostico": data.diagnostico,
                "observaciones": data.observaciones,
                "costo_reparacion": costo,
                "abono": abono,
                "total": ensure_amount_in_range(costo - abono, "total"),
                "estado": DEFAULT_STATUS,
                "fecha_creacion": now,
                "fecha_actualizacion": now
            })
            if codigo is None:
                repository.update_order(order, {"codigo": build_order_code(order.id, now)})

            # 4. Colecciones hijas
            self._write_children(
                tx, repository, order.id,
                {relation: getattr(data, relation) for relation in CHILD_RELATIONS},
                replace=False
            )
            return {"ordenId": order.id, "codigo": order.codigo}

        result = self.coordinator.run_in_transaction(work)
        logger.info(f"✅ Orden de servicio {result['ordenId']} creada ({result['codigo']})")
        return {"message": "Orden de servicio creada exitosamente", **result}

    # ==================== ACTUALIZACIÓN ====================

    def update_order(self, order_id: int, data: ServiceOrderUpdateRequest) -> Dict[str, Any]:
        """
        Reemplazo completo de cada colección enviada; los campos omitidos
        conservan su valor anterior.
        """
        def work(tx: TransactionScope) -> List[str]:
            repository = ServiceOrderRepository(tx.db)
            order = repository.get_for_update(order_id)
            if not order:
                raise NotFoundError("Orden de servicio no encontrada")

            changes: Dict[str, Any] = {}

            # 1. Taxonomías
            if data.marca_id is not None or non_empty(data.marca):
                changes["marca_id"] = self._resolve_reference(
                    tx.db, repository.brand_exists, find_or_create_brand,
                    data.marca_id, data.marca, "Marca"
                )
            if data.tipo_equipo_id is not None or non_empty(data.tipo_equipo):
                changes["tipo_equipo_id"] = self._resolve_reference(
                    tx.db, repository.equipment_type_exists, find_or_create_equipment_type,
                    data.tipo_equipo_id, data.tipo_equipo, "Tipo de equipo"
                )

            # 2. Columnas simples
            for column in MUTABLE_TEXT_COLUMNS:
                value = getattr(data, column)
                if value is not None:
                    changes[column] = value

            codigo = non_empty(data.codigo)
            if codigo is not None and codigo != order.codigo:
                if repository.codigo_taken(codigo, exclude_id=order_id):
                    raise ConflictError(f"La orden '{codigo}' ya existe")
                changes["codigo"] = codigo

            # 3. Montos y total recalculado
            costo = (
                parse_decimal(data.costo_reparacion, "costo_reparacion")
                if data.costo_reparacion is not None else Decimal(order.costo_reparacion)
            )
            abono = (
                parse_decimal(data.abono, "abono")
                if data.abono is not None else Decimal(order.abono)
            )
            changes.update({
                "costo_reparacion": costo,
                "abono": abono,
                "total": ensure_amount_in_range(costo - abono, "total")
            })

            tx.checkpoint()
            repository.update_order(order, changes)

            # 4. Colecciones presentes: borrar y reinsertar
            relations = {relation: getattr(data, relation) for relation in CHILD_RELATIONS}
            self._write_children(tx, repository, order_id, relations, replace=True)
            return [relation for relation, items in relations.items() if items is not None]

        replaced = self.coordinator.run_in_transaction(work)
        logger.info(
            f"✏️ Orden de servicio {order_id} actualizada"
            + (f" (reemplazadas: {', '.join(replaced)})" if replaced else "")
        )
        return {"message": "Orden de servicio actualizada exitosamente", "orden": self.get_order(order_id)}

    def update_status(self, order_id: int, data: StatusUpdateRequest) -> Dict[str, Any]:
        def work(tx: TransactionScope) -> str:
            repository = ServiceOrderRepository(tx.db)
            order = repository.get_for_update(order_id)
            if not order:
                raise NotFoundError("Orden de servicio no encontrada")

            anterior = order.estado
            ensure_transition(anterior, data.estado)
            repository.update_order(order, {"estado": data.estado.value})
            return anterior

        anterior = self.coordinator.run_in_transaction(work)
        logger.info(f"🔄 Orden {order_id}: {anterior} → {data.estado.value}")
        return {
            "message": "Estado actualizado exitosamente",
            "estado_anterior": anterior,
            "estado": data.estado.value
        }

    # ==================== ELIMINACIÓN ====================

    def delete_order(self, order_id: int) -> Dict[str, Any]:
        def work(tx: TransactionScope) -> Optional[str]:
            repository = ServiceOrderRepository(tx.db)
            order = repository.get_for_update(order_id)
            if not order:
                raise NotFoundError("Orden de servicio no encontrada")
            codigo = order.codigo
            repository.delete_order(order_id)
            return codigo

        codigo = self.coordinator.run_in_transaction(work)
        logger.info(f"🗑️ Orden de servicio {order_id} eliminada con sus registros asociados")
        return {"message": "Orden de servicio eliminada exitosamente", "ordenId": order_id, "codigo": codigo}

    # ==================== CONSULTAS ====================

    def get_order(self, order_id: int) -> Dict[str, Any]:
        order = self.repository.get_order(order_id)
        if not order:
            raise NotFoundError("Orden de servicio no encontrada")

        checks = self.repository.get_checks(order_id)
        faults = self.repository.get_faults(order_id)
        parts = self.repository.get_parts(order_id)
        photos = self.repository.get_photos(order_id)

        return {
            **serialize_order_summary(order, faults),
            "diagnostico": order.diagnostico,
            "observaciones": order.observaciones,
            "verificaciones": [
                {
                    "id": c.id,
                    "enciende": c.enciende,
                    "bandeja_sim": c.bandeja_sim,
                    "golpes": c.golpes,
                    "humedad": c.humedad,
                    "altavoz": c.altavoz,
                    "microfono": c.microfono,
                    "auricular": c.auricular,
                    "otro": c.otro,
                    "otro_detalle": c.otro_detalle
                }
                for c in checks
            ],
            "fallas": [
                {"id": f.id, "posicion": f.posicion, "descripcion": f.descripcion, "estado": f.estado}
                for f in faults
            ],
            "repuestos": [
                {
                    "id": p.id,
                    "repuesto_id": p.repuesto_id,
                    "sku": p.product.sku if p.product else None,
                    "nombre": p.product.nombre if p.product else None,
                    "cantidad": p.cantidad,
                    "precio_unitario": float(p.precio_unitario),
                    "subtotal": float(p.precio_unitario * p.cantidad)
                }
                for p in parts
            ],
            "fotos": [
                {"id": f.id, "ruta": f.ruta, "fecha_subida": _iso(f.fecha_subida)}
                for f in photos
            ]
        }

    def list_orders(
        self,
        pagina: Optional[str] = None,
        limite: Optional[str] = None,
        busqueda: Optional[str] = None,
        estado: Optional[str] = None,
        marca_id: Optional[int] = None,
        ordenar_por: Optional[str] = None,
        orden: Optional[str] = None
    ) -> Dict[str, Any]:
        sort_field = resolve_sort_field(ordenar_por, ORDER_SORT_FIELDS, default="fecha_creacion")
        direction = parse_sort_direction(orden, default=SortDirection.desc)
        pagination = parse_pagination(
            pagina, limite, settings.default_page_size, settings.max_page_size
        )
        estado = non_empty(estado)
        if estado is not None and estado not in {s.value for s in RepairStatus}:
            raise ValidationError(
                f"Estado inválido: '{estado}'",
                permitidos=[s.value for s in RepairStatus]
            )

        query = self.repository.listing_query(
            busqueda=busqueda,
            estado=estado,
            marca_id=marca_id
        ).order_by(sort_field, direction, ServiceOrder.id.desc())

        page = self.repository.fetch_page(query, pagination)
        faults = self.repository.get_faults_by_order([o.id for o in page["items"]])

        return {
            "ordenes": [serialize_order_summary(o, faults.get(o.id, [])) for o in page["items"]],
            "paginacion": pagination.as_dict(page["total"])
        }

    # ==================== ESCRITURA DE HIJOS ====================

    def _write_children(
        self,
        tx: TransactionScope,
        repository: ServiceOrderRepository,
        order_id: int,
        relations: Dict[str, Optional[List[Any]]],
        replace: bool
    ):
        """
        Inserta (o reemplaza, si `replace`) cada colección presente, en orden
        fijo y de forma secuencial sobre la conexión de la transacción.
        """
        for relation, items in relations.items():
            if items is None:
                continue
            tx.checkpoint()
            if replace:
                repository.delete_children(relation, order_id)
            rows = self._child_rows(repository, relation, items)
            repository.insert_children(relation, order_id, rows)

    def _child_rows(
        self,
        repository: ServiceOrderRepository,
        relation: str,
        items: List[Any]
    ) -> List[Dict[str, Any]]:
        if relation == "verificaciones":
            if len(items) > 1:
                raise ValidationError("Sólo se admite una verificación de equipo por orden")
            return [item.model_dump() for item in items]

        if relation == "fallas":
            return [
                {
                    "posicion": position,
                    "descripcion": item.descripcion.strip(),
                    "estado": non_empty(item.estado) or DEFAULT_STATUS
                }
                for position, item in enumerate(items)
            ]

        if relation == "repuestos":
            rows = [
                {
                    "repuesto_id": item.repuesto_id,
                    "cantidad": parse_quantity(item.cantidad, f"repuestos[{index}].cantidad"),
                    "precio_unitario": parse_decimal(
                        item.precio_unitario, f"repuestos[{index}].precio_unitario",
                        minimum=Decimal("0"), maximum=MAX_UNIT_PRICE
                    )
                }
                for index, item in enumerate(items, start=1)
            ]
            missing = repository.missing_products(row["repuesto_id"] for row in rows)
            if missing:
                raise ValidationError(
                    "Repuestos inexistentes en el catálogo",
                    repuestos_inexistentes=sorted(missing)
                )
            return rows

        return [{"ruta": item.ruta.strip()} for item in items]

    @staticmethod
    def _resolve_reference(
        db: Session,
        exists: Callable[[int], bool],
        find_or_create: Callable[[Session, str], int],
        reference_id: Optional[int],
        name: Optional[str],
        label: str
    ) -> Optional[int]:
        if reference_id is not None:
            if not exists(reference_id):
                raise ValidationError(f"{label} con ID {reference_id} no existe")
            return reference_id
        name = non_empty(name)
        if name:
            return find_or_create(db, name)
        return None
