# app/modules/service_orders/status.py
"""
Estado de reparación de una orden de servicio.

El estado vive en la columna `ordenes_servicio.estado` y avanza sólo por
`pendiente → en_proceso → terminado`. Las órdenes antiguas guardaban el
estado en las fallas; mientras la orden siga en `pendiente` se informa el
primer estado de falla distinto del predeterminado.
"""
from enum import Enum
from typing import Any, Iterable, Optional

from app.core.exceptions import ValidationError


class RepairStatus(str, Enum):
    pendiente = "pendiente"
    en_proceso = "en_proceso"
    terminado = "terminado"


DEFAULT_STATUS = RepairStatus.pendiente.value

ALLOWED_TRANSITIONS = {
    RepairStatus.pendiente: {RepairStatus.en_proceso},
    RepairStatus.en_proceso: {RepairStatus.terminado},
    RepairStatus.terminado: set(),
}


def _fault_status(fault: Any) -> Optional[str]:
    if isinstance(fault, dict):
        return fault.get("estado")
    return getattr(fault, "estado", None)


def resolve_repair_status(fallas: Iterable[Any], default: str = DEFAULT_STATUS) -> str:
    """Primer estado de falla distinto del predeterminado, o el predeterminado"""
    for fault in fallas:
        status = _fault_status(fault)
        if status and status != default:
            return status
    return default


def reported_status(order_status: Optional[str], fallas: Iterable[Any]) -> str:
    if order_status and order_status != DEFAULT_STATUS:
        return order_status
    return resolve_repair_status(fallas)


def ensure_transition(current: str, target: RepairStatus) -> RepairStatus:
    try:
        current_status = RepairStatus(current)
    except ValueError:
        current_status = RepairStatus.pendiente

    if target not in ALLOWED_TRANSITIONS[current_status]:
        raise ValidationError(
            f"Transición de estado no permitida: {current_status.value} → {target.value}",
            estado_actual=current_status.value,
            permitidos=sorted(s.value for s in ALLOWED_TRANSITIONS[current_status])
        )
    return target
