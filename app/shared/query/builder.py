# app/shared/query/builder.py
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import case, func, or_, select
from sqlalchemy.sql import ColumnElement, Select

from app.core.exceptions import ValidationError
from .params import Pagination, SortDirection


def search_rank(term: str, key_column, *name_columns) -> ColumnElement:
    """
    Relevancia explícita para búsquedas:
    0 = coincidencia exacta de la clave, 1 = prefijo/subcadena en clave o
    nombre, 2 = cualquier otra coincidencia.
    """
    term = term.strip()
    return case(
        (func.lower(key_column) == term.lower(), 0),
        (
            or_(
                key_column.icontains(term, autoescape=True),
                *(column.icontains(term, autoescape=True) for column in name_columns)
            ),
            1
        ),
        else_=2
    )


class FilteredQuery:
    """
    Arma una consulta paginada y su COUNT a partir de filtros opcionales.

    Los valores de filtro siempre viajan como parámetros enlazados. La
    columna de orden sólo puede salir del mapa `sortable` definido en código.
    """

    def __init__(self, entity: Any, sortable: Mapping[str, ColumnElement]):
        self.entity = entity
        self.sortable = sortable
        self._predicates: List[ColumnElement] = []
        self._ranking: List[ColumnElement] = []
        self._order: List[ColumnElement] = []

    @property
    def predicates(self) -> List[ColumnElement]:
        return list(self._predicates)

    # ==================== FILTROS ====================

    def where(self, *predicates: Optional[ColumnElement]) -> "FilteredQuery":
        self._predicates.extend(p for p in predicates if p is not None)
        return self

    def equals(self, column, value: Any) -> "FilteredQuery":
        if value is not None and value != "":
            self._predicates.append(column == value)
        return self

    def at_most(self, column, value: Any) -> "FilteredQuery":
        if value is not None:
            self._predicates.append(column <= value)
        return self

    def at_least(self, column, value: Any) -> "FilteredQuery":
        if value is not None:
            self._predicates.append(column >= value)
        return self

    def between(self, column, start: Any, end: Any) -> "FilteredQuery":
        return self.at_least(column, start).at_most(column, end)

    def search(self, term: Optional[str], *columns) -> "FilteredQuery":
        if term is None or not term.strip():
            return self
        term = term.strip()
        self._predicates.append(
            or_(*(column.icontains(term, autoescape=True) for column in columns))
        )
        return self

    # ==================== ORDEN ====================

    def rank_by(self, ranking: ColumnElement) -> "FilteredQuery":
        self._ranking.append(ranking)
        return self

    def order_by(self, field: str, direction: SortDirection, *tie_breakers: ColumnElement) -> "FilteredQuery":
        if field not in self.sortable:
            raise ValidationError(f"Campo de orden no permitido: '{field}'")
        if not isinstance(direction, SortDirection):
            raise ValidationError(f"Dirección de orden inválida: '{direction}'")

        column = self.sortable[field]
        self._order = [
            column.asc() if direction is SortDirection.asc else column.desc(),
            *tie_breakers
        ]
        return self

    # ==================== CONSTRUCCIÓN ====================

    def filtered(self, *columns) -> Select:
        """SELECT de `columns` (o de la entidad) con los mismos predicados"""
        stmt = select(*columns) if columns else select(self.entity)
        if columns:
            stmt = stmt.select_from(self.entity)
        return stmt.where(*self._predicates)

    def build(self, pagination: Pagination) -> Tuple[Select, Select]:
        stmt = (
            select(self.entity)
            .where(*self._predicates)
            .order_by(*self._ranking, *self._order)
            .limit(pagination.page_size)
            .offset(pagination.offset)
        )
        count_stmt = select(func.count()).select_from(self.entity).where(*self._predicates)
        return stmt, count_stmt
