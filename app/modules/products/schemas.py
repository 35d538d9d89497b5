from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.shared.validators import MAX_QUANTITY, MAX_UNIT_PRICE

# ==================== ENUMS ====================

class StockOperation(str, Enum):
    add = "add"
    subtract = "subtract"
    set = "set"

# ==================== REQUEST SCHEMAS ====================

class ProductCreateRequest(BaseModel):
    sku: Optional[str] = Field(None, max_length=100, description="SKU único (se genera si se omite)")
    nombre: str = Field(..., min_length=1, max_length=255, description="Nombre del producto")
    descripcion: Optional[str] = Field(None, description="Descripción")
    precio: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE, description="Precio de venta")
    precio_mayor: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE, description="Precio por mayor")
    precio_cliente: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE, description="Precio cliente frecuente")
    stock: int = Field(0, ge=0, le=MAX_QUANTITY, description="Stock inicial")
    marca_id: Optional[int] = Field(None, description="ID de marca")
    tipo_id: Optional[int] = Field(None, description="ID de tipo de repuesto")

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: Optional[str]):
        if v is None or not v.strip():
            return None
        return v.strip().upper()

    @field_validator("nombre")
    @classmethod
    def validate_nombre(cls, v: str):
        if not v.strip():
            raise ValueError("El nombre no puede estar vacío")
        return v.strip()

class ProductUpdateRequest(BaseModel):
    sku: Optional[str] = Field(None, max_length=100)
    nombre: Optional[str] = Field(None, max_length=255)
    descripcion: Optional[str] = None
    precio: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE)
    precio_mayor: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE)
    precio_cliente: Optional[Decimal] = Field(None, ge=0, le=MAX_UNIT_PRICE)
    stock: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)
    marca_id: Optional[int] = None
    tipo_id: Optional[int] = None

    @field_validator("sku", "nombre")
    @classmethod
    def blank_as_missing(cls, v: Optional[str], info):
        if v is None or not v.strip():
            return None
        return v.strip().upper() if info.field_name == "sku" else v.strip()

class StockUpdateRequest(BaseModel):
    operacion: StockOperation = Field(..., description="add, subtract o set")
    cantidad: int = Field(..., ge=0, le=MAX_QUANTITY, description="Cantidad a aplicar")
    motivo: Optional[str] = Field(None, max_length=500, description="Motivo del ajuste")
