# app/modules/catalog/router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import CurrentUser, get_current_user
from app.core.transaction import TransactionCoordinator, get_transaction_coordinator
from .schemas import CatalogItemCreate
from .service import CatalogService

router = APIRouter(tags=["Catálogo - Marcas y tipos"])


def get_catalog_service(
    db: Session = Depends(get_db),
    coordinator: TransactionCoordinator = Depends(get_transaction_coordinator)
) -> CatalogService:
    return CatalogService(db, coordinator)

# ==================== MARCAS ====================

@router.get("/marcas")
def list_brands(
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.list_brands()


@router.post("/marcas", status_code=status.HTTP_201_CREATED)
def create_brand(
    data: CatalogItemCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.create_brand(data.nombre)


@router.get("/marcas/{brand_id}/tipos-repuesto")
def get_brand_part_types(
    brand_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.get_brand_part_types(brand_id)

# ==================== TIPOS DE REPUESTO ====================

@router.get("/tipos-repuesto")
def list_part_types(
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.list_part_types()


@router.post("/tipos-repuesto", status_code=status.HTTP_201_CREATED)
def create_part_type(
    data: CatalogItemCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Crear tipo de repuesto; queda vinculado automáticamente a todas las marcas
    """
    return service.create_part_type(data.nombre)

# ==================== TIPOS DE EQUIPO ====================

@router.get("/tipos-equipo")
def list_equipment_types(
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.list_equipment_types()


@router.post("/tipos-equipo", status_code=status.HTTP_201_CREATED)
def create_equipment_type(
    data: CatalogItemCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    return service.create_equipment_type(data.nombre)
