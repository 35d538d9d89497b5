# app/modules/catalog/service.py
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.core.transaction import TransactionCoordinator, TransactionScope
from app.shared.database.models import Brand, EquipmentType, PartType
from .repository import CatalogRepository
from .schemas import CatalogItemResponse

logger = logging.getLogger(__name__)


def _serialize(item) -> Dict[str, Any]:
    return CatalogItemResponse.model_validate(item).model_dump(mode="json")


class CatalogService:
    """
    Marcas, tipos de repuesto y tipos de equipo
    """

    def __init__(self, db: Session, coordinator: TransactionCoordinator):
        self.db = db
        self.repository = CatalogRepository(db)
        self.coordinator = coordinator

    # ==================== LECTURAS ====================

    def list_brands(self) -> List[Dict[str, Any]]:
        return [_serialize(b) for b in self.repository.list_brands()]

    def list_part_types(self) -> List[Dict[str, Any]]:
        return [_serialize(t) for t in self.repository.list_part_types()]

    def list_equipment_types(self) -> List[Dict[str, Any]]:
        return [_serialize(t) for t in self.repository.list_equipment_types()]

    def get_brand_part_types(self, brand_id: int) -> Dict[str, Any]:
        brand = self.repository.get_brand(brand_id)
        if not brand:
            raise NotFoundError("Marca no encontrada")
        return {
            "marca": _serialize(brand),
            "tipos_repuesto": [_serialize(t) for t in self.repository.get_part_types_for_brand(brand_id)]
        }

    # ==================== ESCRITURAS ====================

    def create_brand(self, nombre: str) -> Dict[str, Any]:
        def work(tx: TransactionScope):
            repository = CatalogRepository(tx.db)
            self._ensure_unique(repository, Brand, nombre, "La marca")
            return _serialize(repository.create_brand(nombre))

        brand = self.coordinator.run_in_transaction(work)
        logger.info(f"✅ Marca creada: {brand['id']}")
        return brand

    def create_part_type(self, nombre: str) -> Dict[str, Any]:
        """
        Crear tipo de repuesto y vincularlo con todas las marcas existentes
        en la misma transacción.
        """
        def work(tx: TransactionScope):
            repository = CatalogRepository(tx.db)
            self._ensure_unique(repository, PartType, nombre, "El tipo de repuesto")
            part_type = repository.create_part_type(nombre)
            tx.checkpoint()
            linked = repository.link_part_type_to_all_brands(part_type.id)
            return {**_serialize(part_type), "marcas_vinculadas": linked}

        part_type = self.coordinator.run_in_transaction(work)
        logger.info(f"✅ Tipo de repuesto {part_type['id']} vinculado a {part_type['marcas_vinculadas']} marcas")
        return part_type

    def create_equipment_type(self, nombre: str) -> Dict[str, Any]:
        def work(tx: TransactionScope):
            repository = CatalogRepository(tx.db)
            self._ensure_unique(repository, EquipmentType, nombre, "El tipo de equipo")
            return _serialize(repository.create_equipment_type(nombre))

        return self.coordinator.run_in_transaction(work)

    @staticmethod
    def _ensure_unique(repository: CatalogRepository, model, nombre: str, label: str):
        if repository.name_exists(model, nombre):
            raise ConflictError(f"{label} '{nombre}' ya existe")
