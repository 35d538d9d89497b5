# app/shared/validators.py
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.core.exceptions import ValidationError

CENTS = Decimal("0.01")

# Límites de las columnas Integer, Numeric(10, 2) y Numeric(12, 2)
MAX_QUANTITY = 2**31 - 1
MAX_UNIT_PRICE = Decimal("99999999.99")
MAX_AMOUNT = Decimal("9999999999.99")


def parse_decimal(
    value: Any,
    field: str,
    minimum: Optional[Decimal] = None,
    maximum: Decimal = MAX_AMOUNT
) -> Decimal:
    """
    Convertir un monto recibido (número o texto) a Decimal finito con 2 decimales.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"El campo '{field}' debe ser numérico")

    raw = value.strip() if isinstance(value, str) else value
    if raw == "":
        raise ValidationError(f"El campo '{field}' debe ser numérico")

    try:
        number = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"El campo '{field}' debe ser numérico (recibido: {value!r})")

    if not number.is_finite():
        raise ValidationError(f"El campo '{field}' debe ser un número finito")
    if minimum is not None and number < minimum:
        raise ValidationError(f"El campo '{field}' no puede ser menor a {minimum}")
    ensure_amount_in_range(number, field, maximum)

    try:
        return number.quantize(CENTS)
    except InvalidOperation:
        raise ValidationError(f"El campo '{field}' está fuera de rango")


def ensure_amount_in_range(amount: Decimal, field: str, maximum: Decimal = MAX_AMOUNT) -> Decimal:
    """Montos calculados (subtotales, totales) también deben caber en su columna"""
    if abs(amount) > maximum:
        raise ValidationError(f"El campo '{field}' está fuera de rango", maximo=float(maximum))
    return amount


def parse_quantity(value: Any, field: str = "cantidad") -> int:
    """Cantidad entera, mayor a cero y dentro del rango de la columna"""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"El campo '{field}' debe ser numérico")

    raw = value.strip() if isinstance(value, str) else value
    try:
        number = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"El campo '{field}' debe ser numérico (recibido: {value!r})")

    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError(f"El campo '{field}' debe ser un número entero")
    if number <= 0:
        raise ValidationError(f"El campo '{field}' debe ser mayor a 0")
    if number > MAX_QUANTITY:
        raise ValidationError(f"El campo '{field}' está fuera de rango", maximo=MAX_QUANTITY)

    return int(number)


def non_empty(value: Optional[str]) -> Optional[str]:
    """Normalizar textos opcionales: vacío o sólo espacios cuenta como ausente"""
    if value is None:
        return None
    value = value.strip()
    return value or None
