from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .status import RepairStatus

# ==================== HIJOS ====================

class EquipmentCheckRequest(BaseModel):
    """Checklist de recepción del equipo"""
    enciende: bool = False
    bandeja_sim: bool = False
    golpes: bool = False
    humedad: bool = False
    altavoz: bool = False
    microfono: bool = False
    auricular: bool = False
    otro: bool = False
    otro_detalle: Optional[str] = Field(None, max_length=500)

class FaultRequest(BaseModel):
    descripcion: str = Field(..., min_length=1, description="Falla reportada")
    estado: Optional[str] = Field(None, max_length=50, description="Estado de la falla (pendiente si se omite)")

    @field_validator("descripcion")
    @classmethod
    def validate_descripcion(cls, v: str):
        return _required_text(v, "La descripción de la falla")

class OrderPartRequest(BaseModel):
    repuesto_id: int = Field(..., description="ID del producto usado como repuesto")
    # Cantidad y precio se validan dentro de la transacción
    cantidad: Any = Field(..., description="Cantidad (entero > 0)")
    precio_unitario: Any = Field(..., description="Precio unitario (número ≥ 0)")

class OrderPhotoRequest(BaseModel):
    ruta: str = Field(..., min_length=1, max_length=500, description="Ruta del archivo almacenado")

    @field_validator("ruta")
    @classmethod
    def validate_ruta(cls, v: str):
        return _required_text(v, "La ruta de la foto")


def _required_text(v: str, label: str) -> str:
    if not v.strip():
        raise ValueError(f"{label} no puede estar vacía")
    return v.strip()


def _photos_from_paths(v: Any):
    if isinstance(v, list):
        return [{"ruta": item} if isinstance(item, str) else item for item in v]
    return v

# ==================== ÓRDENES ====================

class ServiceOrderCreateRequest(BaseModel):
    codigo: Optional[str] = Field(None, max_length=50, description="Código de la orden (se genera si se omite)")
    cliente_nombre: str = Field(..., min_length=1, max_length=255)
    cliente_telefono: Optional[str] = Field(None, max_length=50)
    cliente_email: Optional[str] = Field(None, max_length=255)
    marca_id: Optional[int] = Field(None, description="ID de marca del equipo")
    marca: Optional[str] = Field(None, max_length=255, description="Nombre de marca (se crea si no existe)")
    tipo_equipo_id: Optional[int] = Field(None, description="ID del tipo de equipo")
    tipo_equipo: Optional[str] = Field(None, max_length=255, description="Nombre del tipo de equipo (se crea si no existe)")
    modelo: Optional[str] = Field(None, max_length=255)
    diagnostico: Optional[str] = None
    observaciones: Optional[str] = None
    costo_reparacion: Any = Field(0, description="Costo de la reparación")
    abono: Any = Field(0, description="Abono adelantado")

    verificaciones: List[EquipmentCheckRequest] = Field(default_factory=list)
    fallas: List[FaultRequest] = Field(default_factory=list)
    repuestos: List[OrderPartRequest] = Field(default_factory=list)
    fotos: List[OrderPhotoRequest] = Field(default_factory=list)

    @field_validator("cliente_nombre")
    @classmethod
    def validate_cliente_nombre(cls, v: str):
        if not v.strip():
            raise ValueError("El nombre del cliente no puede estar vacío")
        return v.strip()

    @field_validator("fotos", mode="before")
    @classmethod
    def normalize_photos(cls, v: Any):
        return _photos_from_paths(v)

class ServiceOrderUpdateRequest(BaseModel):
    """
    Campos omitidos (o null) conservan su valor. Cada colección hija enviada
    reemplaza por completo a la existente; las omitidas no se tocan.
    """
    codigo: Optional[str] = Field(None, max_length=50)
    cliente_nombre: Optional[str] = Field(None, max_length=255)
    cliente_telefono: Optional[str] = Field(None, max_length=50)
    cliente_email: Optional[str] = Field(None, max_length=255)
    marca_id: Optional[int] = None
    marca: Optional[str] = Field(None, max_length=255)
    tipo_equipo_id: Optional[int] = None
    tipo_equipo: Optional[str] = Field(None, max_length=255)
    modelo: Optional[str] = Field(None, max_length=255)
    diagnostico: Optional[str] = None
    observaciones: Optional[str] = None
    costo_reparacion: Any = None
    abono: Any = None

    verificaciones: Optional[List[EquipmentCheckRequest]] = None
    fallas: Optional[List[FaultRequest]] = None
    repuestos: Optional[List[OrderPartRequest]] = None
    fotos: Optional[List[OrderPhotoRequest]] = None

    @field_validator("cliente_nombre")
    @classmethod
    def blank_name_as_missing(cls, v: Optional[str]):
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("fotos", mode="before")
    @classmethod
    def normalize_photos(cls, v: Any):
        return _photos_from_paths(v)

class StatusUpdateRequest(BaseModel):
    estado: RepairStatus = Field(..., description="Nuevo estado: en_proceso o terminado")
