"""
Tests for the repair status resolver and its transition rules.
"""

from types import SimpleNamespace

import pytest

from app.core.exceptions import ValidationError
from app.modules.service_orders.status import (
    DEFAULT_STATUS, RepairStatus, ensure_transition, reported_status, resolve_repair_status
)


class TestResolveRepairStatus:
    """Test derivation from the fault list."""

    def test_empty_list_is_pending(self):
        assert resolve_repair_status([]) == "pendiente"

    def test_all_default_is_pending(self):
        fallas = [{"estado": "pendiente"}, {"estado": "pendiente"}]

        assert resolve_repair_status(fallas) == DEFAULT_STATUS

    def test_first_non_default_wins(self):
        fallas = [
            {"estado": "pendiente"},
            {"estado": "en_proceso"},
            {"estado": "terminado"},
        ]

        assert resolve_repair_status(fallas) == "en_proceso"

    def test_missing_or_empty_status_is_skipped(self):
        fallas = [{"descripcion": "sin estado"}, {"estado": ""}, {"estado": "terminado"}]

        assert resolve_repair_status(fallas) == "terminado"

    def test_accepts_orm_like_objects(self):
        fallas = [SimpleNamespace(estado="pendiente"), SimpleNamespace(estado="terminado")]

        assert resolve_repair_status(fallas) == "terminado"


class TestReportedStatus:
    """Test precedence between the order column and the fault scan."""

    def test_pending_order_falls_back_to_faults(self):
        assert reported_status("pendiente", [{"estado": "en_proceso"}]) == "en_proceso"

    def test_advanced_order_column_wins(self):
        assert reported_status("terminado", [{"estado": "en_proceso"}]) == "terminado"

    def test_missing_column_uses_faults(self):
        assert reported_status(None, []) == "pendiente"


class TestTransitions:
    """Test the pendiente → en_proceso → terminado state machine."""

    def test_forward_transitions(self):
        assert ensure_transition("pendiente", RepairStatus.en_proceso) is RepairStatus.en_proceso
        assert ensure_transition("en_proceso", RepairStatus.terminado) is RepairStatus.terminado

    @pytest.mark.parametrize("current,target", [
        ("pendiente", RepairStatus.terminado),
        ("pendiente", RepairStatus.pendiente),
        ("en_proceso", RepairStatus.pendiente),
        ("terminado", RepairStatus.en_proceso),
        ("terminado", RepairStatus.terminado),
    ])
    def test_illegal_transitions(self, current, target):
        with pytest.raises(ValidationError) as exc_info:
            ensure_transition(current, target)

        assert exc_info.value.extra["estado_actual"] == current

    def test_terminal_state_allows_nothing(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_transition("terminado", RepairStatus.en_proceso)

        assert exc_info.value.extra["permitidos"] == []

    def test_unknown_stored_value_is_treated_as_pending(self):
        assert ensure_transition("recibido", RepairStatus.en_proceso) is RepairStatus.en_proceso
