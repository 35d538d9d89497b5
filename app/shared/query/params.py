# app/shared/query/params.py
"""
Validación de parámetros de listado (orden, dirección y paginación).

Todo lo que termina como texto estructural de la consulta (columna y
dirección de orden) pasa por aquí antes de tocar la base de datos.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from app.core.exceptions import ValidationError


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


def parse_sort_direction(raw: Optional[str], default: SortDirection = SortDirection.desc) -> SortDirection:
    if raw is None or raw == "":
        return default
    try:
        return SortDirection(raw.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Dirección de orden inválida: '{raw}'",
            permitidos=[d.value for d in SortDirection]
        )


def resolve_sort_field(raw: Optional[str], whitelist: Mapping[str, Any], default: str) -> str:
    """Devolver la clave de la lista blanca solicitada o lanzar ValidationError"""
    if raw is None or raw == "":
        return default
    key = raw.strip()
    if key not in whitelist:
        raise ValidationError(
            f"Campo de orden no permitido: '{raw}'",
            permitidos=sorted(whitelist)
        )
    return key


def _positive_int(raw: Any, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value >= 1 else default


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.page_size) if total > 0 else 0

    def as_dict(self, total: int) -> dict:
        return {
            "pagina": self.page,
            "limite": self.page_size,
            "total": total,
            "totalPaginas": self.total_pages(total)
        }


def parse_pagination(page: Any, page_size: Any, default_size: int = 10, max_size: int = 100) -> Pagination:
    return Pagination(
        page=_positive_int(page, 1),
        page_size=min(_positive_int(page_size, default_size), max_size)
    )
