# app/modules/catalog/repository.py
from typing import List, Optional, Type

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from app.shared.database.models import Brand, BrandPartType, EquipmentType, PartType


def _find_id_by_name(db: Session, model: Type, nombre: str) -> Optional[int]:
    return db.execute(
        select(model.id).where(model.nombre == nombre)
    ).scalar_one_or_none()


def _find_or_create(db: Session, model: Type, nombre: str) -> int:
    nombre = nombre.strip()
    existing_id = _find_id_by_name(db, model, nombre)
    if existing_id is not None:
        return existing_id

    instance = model(nombre=nombre)
    db.add(instance)
    db.flush()  # Obtener ID sin hacer commit aún
    return instance.id


def find_or_create_brand(db: Session, nombre: str) -> int:
    """Buscar marca por nombre exacto; crearla si no existe"""
    return _find_or_create(db, Brand, nombre)


def find_or_create_equipment_type(db: Session, nombre: str) -> int:
    """Buscar tipo de equipo por nombre exacto; crearlo si no existe"""
    return _find_or_create(db, EquipmentType, nombre)


class CatalogRepository:
    """
    Acceso a datos de marcas, tipos de repuesto y tipos de equipo
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== MARCAS ====================

    def list_brands(self) -> List[Brand]:
        return list(self.db.execute(select(Brand).order_by(Brand.nombre)).scalars())

    def get_brand(self, brand_id: int) -> Optional[Brand]:
        return self.db.get(Brand, brand_id)

    def get_part_types_for_brand(self, brand_id: int) -> List[PartType]:
        return list(self.db.execute(
            select(PartType)
            .join(BrandPartType, BrandPartType.tipo_repuesto_id == PartType.id)
            .where(BrandPartType.marca_id == brand_id)
            .order_by(PartType.nombre)
        ).scalars())

    def create_brand(self, nombre: str) -> Brand:
        brand = Brand(nombre=nombre)
        self.db.add(brand)
        self.db.flush()
        return brand

    # ==================== TIPOS DE REPUESTO ====================

    def list_part_types(self) -> List[PartType]:
        return list(self.db.execute(select(PartType).order_by(PartType.nombre)).scalars())

    def create_part_type(self, nombre: str) -> PartType:
        part_type = PartType(nombre=nombre)
        self.db.add(part_type)
        self.db.flush()
        return part_type

    def link_part_type_to_all_brands(self, part_type_id: int) -> int:
        """Vincular un tipo de repuesto con todas las marcas existentes"""
        brand_ids = self.db.execute(select(Brand.id).order_by(Brand.id)).scalars().all()
        if brand_ids:
            self.db.execute(
                insert(BrandPartType),
                [{"marca_id": brand_id, "tipo_repuesto_id": part_type_id} for brand_id in brand_ids]
            )
        return len(brand_ids)

    # ==================== TIPOS DE EQUIPO ====================

    def list_equipment_types(self) -> List[EquipmentType]:
        return list(self.db.execute(select(EquipmentType).order_by(EquipmentType.nombre)).scalars())

    def create_equipment_type(self, nombre: str) -> EquipmentType:
        equipment_type = EquipmentType(nombre=nombre)
        self.db.add(equipment_type)
        self.db.flush()
        return equipment_type

    # ==================== UTILIDADES ====================

    def name_exists(self, model: Type, nombre: str) -> bool:
        return _find_id_by_name(self.db, model, nombre) is not None
