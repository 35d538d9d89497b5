# app/modules/products/service.py
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.transaction import TransactionCoordinator, TransactionScope
from app.shared.database.models import Product
from app.shared.query.builder import search_rank
from app.shared.query.params import (
    SortDirection, parse_pagination, parse_sort_direction, resolve_sort_field
)
from app.shared.validators import MAX_QUANTITY
from .repository import PRODUCT_SORT_FIELDS, ProductRepository
from .schemas import (
    ProductCreateRequest, ProductUpdateRequest, StockOperation, StockUpdateRequest
)
from .sku import generate_sku

logger = logging.getLogger(__name__)


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "sku": product.sku,
        "nombre": product.nombre,
        "descripcion": product.descripcion,
        "precio": _money(product.precio),
        "precio_mayor": _money(product.precio_mayor),
        "precio_cliente": _money(product.precio_cliente),
        "stock": product.stock,
        "marca_id": product.marca_id,
        "marca": product.brand.nombre if product.brand else None,
        "tipo_id": product.tipo_id,
        "tipo": product.part_type.nombre if product.part_type else None,
        "fecha_creacion": product.fecha_creacion.isoformat() if product.fecha_creacion else None,
        "fecha_actualizacion": product.fecha_actualizacion.isoformat() if product.fecha_actualizacion else None
    }


class ProductService:
    """
    Catálogo de productos: listado filtrado, búsqueda, CRUD y ajustes de stock
    """

    def __init__(self, db: Session, coordinator: TransactionCoordinator):
        self.db = db
        self.repository = ProductRepository(db)
        self.coordinator = coordinator

    # ==================== LISTADO ====================

    def list_products(
        self,
        pagina: Optional[str] = None,
        limite: Optional[str] = None,
        busqueda: Optional[str] = None,
        marca_id: Optional[int] = None,
        tipo_id: Optional[int] = None,
        stock_minimo: Optional[int] = None,
        ordenar_por: Optional[str] = None,
        orden: Optional[str] = None
    ) -> Dict[str, Any]:
        # 1. Validar parámetros antes de consultar
        sort_field = resolve_sort_field(ordenar_por, PRODUCT_SORT_FIELDS, default="nombre")
        direction = parse_sort_direction(orden, default=SortDirection.asc)
        pagination = parse_pagination(
            pagina, limite, settings.default_page_size, settings.max_page_size
        )

        # 2. Armar filtros
        query = self.repository.listing_query(
            busqueda=busqueda,
            marca_id=marca_id,
            tipo_id=tipo_id,
            stock_minimo=stock_minimo
        )
        if busqueda and busqueda.strip() and not ordenar_por:
            query.rank_by(search_rank(busqueda, Product.sku, Product.nombre))
        query.order_by(sort_field, direction, Product.id.asc())

        # 3. Consultar página y estadísticas
        page = self.repository.fetch_page(query, pagination)
        stats = self.repository.get_statistics(query, settings.low_stock_threshold)

        return {
            "productos": [serialize_product(p) for p in page["items"]],
            "paginacion": pagination.as_dict(page["total"]),
            "estadisticas": stats
        }

    def search_products(self, termino: str, limite: Optional[str] = None) -> Dict[str, Any]:
        termino = (termino or "").strip()
        if not termino:
            raise ValidationError("El término de búsqueda no puede estar vacío")

        pagination = parse_pagination(1, limite, 20, settings.max_page_size)
        products = self.repository.search_ranked(termino, pagination.page_size)

        return {
            "busqueda": termino,
            "total": len(products),
            "coincidencia_exacta": bool(products) and products[0].sku.lower() == termino.lower(),
            "productos": [serialize_product(p) for p in products]
        }

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repository.get_by_id(product_id)
        if not product:
            raise NotFoundError("Producto no encontrado")
        return serialize_product(product)

    # ==================== ESCRITURAS ====================

    def create_product(self, data: ProductCreateRequest) -> Dict[str, Any]:
        def work(tx: TransactionScope) -> int:
            repository = ProductRepository(tx.db)
            marca = self._ensure_reference(repository.brand_name, data.marca_id, "Marca")
            tipo = self._ensure_reference(repository.part_type_name, data.tipo_id, "Tipo de repuesto")

            sku = data.sku
            if sku is None:
                sku = self._generate_unique_sku(repository, data.nombre, marca, tipo)
            elif repository.sku_taken(sku):
                raise ConflictError(f"El SKU '{sku}' ya existe")

            product = repository.create({**data.model_dump(exclude={"sku"}), "sku": sku})
            return product.id

        product_id = self.coordinator.run_in_transaction(work)
        logger.info(f"✅ Producto {product_id} creado")
        return {"message": "Producto creado exitosamente", "producto": self.get_product(product_id)}

    def update_product(
        self,
        product_id: int,
        data: ProductUpdateRequest,
        usuario_id: Optional[int] = None
    ) -> Dict[str, Any]:
        changes = data.model_dump(exclude_none=True)

        def work(tx: TransactionScope):
            repository = ProductRepository(tx.db)
            product = repository.get_for_update(product_id)
            if not product:
                raise NotFoundError("Producto no encontrado")

            if "sku" in changes and repository.sku_taken(changes["sku"], exclude_id=product_id):
                raise ConflictError(f"El SKU '{changes['sku']}' ya existe")
            if "marca_id" in changes:
                self._ensure_reference(repository.brand_name, changes["marca_id"], "Marca")
            if "tipo_id" in changes:
                self._ensure_reference(repository.part_type_name, changes["tipo_id"], "Tipo de repuesto")

            anterior = product.stock or 0
            repository.apply_changes(product, changes)
            if "stock" in changes and changes["stock"] != anterior:
                # Todo cambio de stock queda en el historial de movimientos
                repository.add_stock_movement(
                    product_id=product_id,
                    operacion=StockOperation.set.value,
                    cantidad=changes["stock"],
                    stock_anterior=anterior,
                    stock_nuevo=changes["stock"],
                    motivo="Edición de producto",
                    usuario_id=usuario_id
                )

        self.coordinator.run_in_transaction(work)
        return {"message": "Producto actualizado exitosamente", "producto": self.get_product(product_id)}

    def update_stock(
        self,
        product_id: int,
        data: StockUpdateRequest,
        usuario_id: Optional[int] = None
    ) -> Dict[str, Any]:
        if data.operacion != StockOperation.set and data.cantidad <= 0:
            raise ValidationError("La cantidad debe ser mayor a 0")

        def work(tx: TransactionScope) -> Dict[str, Any]:
            repository = ProductRepository(tx.db)
            product = repository.get_for_update(product_id)
            if not product:
                raise NotFoundError("Producto no encontrado")

            anterior = product.stock or 0
            if data.operacion == StockOperation.add:
                nuevo = anterior + data.cantidad
            elif data.operacion == StockOperation.subtract:
                nuevo = anterior - data.cantidad
            else:
                nuevo = data.cantidad

            if nuevo > MAX_QUANTITY:
                raise ValidationError(
                    "El stock resultante está fuera de rango",
                    stock_actual=anterior,
                    maximo=MAX_QUANTITY
                )
            if nuevo < 0:
                raise ValidationError(
                    "Stock insuficiente",
                    stock_actual=anterior,
                    cantidad_solicitada=data.cantidad
                )

            repository.apply_changes(product, {"stock": nuevo})
            repository.add_stock_movement(
                product_id=product_id,
                operacion=data.operacion.value,
                cantidad=data.cantidad,
                stock_anterior=anterior,
                stock_nuevo=nuevo,
                motivo=data.motivo,
                usuario_id=usuario_id
            )
            return {
                "stock_anterior": anterior,
                "stock_nuevo": nuevo,
                "diferencia": nuevo - anterior,
                "motivo": data.motivo
            }

        operation = self.coordinator.run_in_transaction(work)
        logger.info(
            f"📦 Stock del producto {product_id}: {operation['stock_anterior']} → {operation['stock_nuevo']}"
        )
        return {
            "message": "Stock actualizado exitosamente",
            "producto": self.get_product(product_id),
            "operacion_realizada": {"operacion": data.operacion.value, **operation}
        }

    def delete_product(self, product_id: int) -> Dict[str, Any]:
        def work(tx: TransactionScope) -> Dict[str, Any]:
            repository = ProductRepository(tx.db)
            product = repository.get_for_update(product_id)
            if not product:
                raise NotFoundError("Producto no encontrado")

            ventas = repository.count_sale_lines(product.sku)
            if ventas:
                raise ConflictError(
                    "No se puede eliminar un producto con ventas asociadas",
                    ventas_asociadas=ventas
                )
            ordenes = repository.count_order_usages(product_id)
            if ordenes:
                raise ConflictError(
                    "No se puede eliminar un producto usado en órdenes de servicio",
                    ordenes_asociadas=ordenes
                )

            eliminado = {"id": product.id, "sku": product.sku, "nombre": product.nombre}
            repository.delete(product_id)
            return eliminado

        eliminado = self.coordinator.run_in_transaction(work)
        logger.info(f"🗑️ Producto {product_id} eliminado")
        return {"message": "Producto eliminado exitosamente", "producto_eliminado": eliminado}

    # ==================== UTILIDADES ====================

    @staticmethod
    def _ensure_reference(lookup, reference_id: Optional[int], label: str) -> Optional[str]:
        if reference_id is None:
            return None
        name = lookup(reference_id)
        if name is None:
            raise ValidationError(f"{label} con ID {reference_id} no existe")
        return name

    @staticmethod
    def _generate_unique_sku(
        repository: ProductRepository,
        nombre: str,
        marca: Optional[str],
        tipo: Optional[str]
    ) -> str:
        sequence = repository.next_sequence()
        sku = generate_sku(nombre, marca, tipo, sequence)
        while repository.sku_taken(sku):
            sequence += 1
            sku = generate_sku(nombre, marca, tipo, sequence)
        return sku
