from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional
from enum import Enum

# ==================== ENUMS ====================

class PaymentMethodType(str, Enum):
    efectivo = "efectivo"
    debito = "debito"
    credito = "credito"
    transferencia = "transferencia"

class ReportPeriod(str, Enum):
    dia = "dia"
    semana = "semana"
    mes = "mes"
    anio = "anio"

# ==================== REQUEST SCHEMAS ====================

class SaleItemRequest(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100, description="SKU del producto")
    descripcion: str = Field(..., min_length=1, max_length=255, description="Descripción en la boleta")
    # Cantidad y precio se validan dentro de la transacción
    cantidad: Any = Field(..., description="Cantidad (entero > 0)")
    precio_unitario: Any = Field(..., description="Precio unitario (número ≥ 0)")

    @field_validator('sku')
    @classmethod
    def normalize_sku(cls, v: str):
        if not v.strip():
            raise ValueError('El SKU no puede estar vacío')
        return v.strip().upper()

class SaleCreateRequest(BaseModel):
    numero_boleta: Optional[int] = Field(None, gt=0, description="Número de boleta (correlativo si se omite)")
    vendedor: Optional[str] = Field(None, max_length=255, description="Vendedor (usuario autenticado si se omite)")
    forma_pago: PaymentMethodType = Field(PaymentMethodType.efectivo, description="Forma de pago")
    monto_recibido: Any = Field(None, description="Monto entregado por el cliente")
    items: List[SaleItemRequest] = Field(default_factory=list, description="Items de la venta")
