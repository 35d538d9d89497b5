from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogItemCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=255, description="Nombre único")

    @field_validator("nombre")
    @classmethod
    def validate_nombre(cls, v: str):
        if not v.strip():
            raise ValueError("El nombre no puede estar vacío")
        return v.strip()


class CatalogItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    nombre: str
    fecha_creacion: Optional[datetime] = None
