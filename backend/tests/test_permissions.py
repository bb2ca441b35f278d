"""
Unit tests per le regole di modifica dell'ordine per ruolo.
"""

import pytest

from printpro.core.exceptions import AuthorizationError
from printpro.domain.order_state import OrderStatus
from printpro.domain.permissions import resolve_order_update


class TestClientUpdates:
    """Il cliente proprietario modifica solo i propri campi, solo in bozza."""

    def test_client_edits_draft(self):
        decision = resolve_order_update(
            {"notes": "Livraison le matin", "items": ["..."]},
            OrderStatus.DRAFT,
            is_owner=True,
            is_staff=False,
        )

        assert decision.allowed == {"notes": "Livraison le matin", "items": ["..."]}
        assert decision.ignored == ()

    def test_client_status_change_ignored(self):
        """Test un cliente non può cambiare lo stato: il campo viene scartato."""
        decision = resolve_order_update(
            {"status": OrderStatus.CONFIRMED, "notes": "ok"},
            OrderStatus.DRAFT,
            is_owner=True,
            is_staff=False,
        )

        assert "status" not in decision.allowed
        assert decision.ignored == ("status",)

    def test_client_locked_after_draft(self):
        """Test fuori dalla bozza il cliente non modifica nulla."""
        decision = resolve_order_update(
            {"notes": "modifica tardiva"},
            OrderStatus.CONFIRMED,
            is_owner=True,
            is_staff=False,
        )

        assert decision.allowed == {}
        assert decision.ignored == ("notes",)

    def test_client_locked_strict(self):
        """Test in modalità strict i campi bloccati sono rifiutati."""
        with pytest.raises(AuthorizationError) as exc_info:
            resolve_order_update(
                {"internal_notes": "x"},
                OrderStatus.DRAFT,
                is_owner=True,
                is_staff=False,
                strict=True,
            )
        assert exc_info.value.extra["locked_fields"] == ["internal_notes"]

    def test_non_owner_rejected(self):
        with pytest.raises(AuthorizationError):
            resolve_order_update({"notes": "x"}, OrderStatus.DRAFT, is_owner=False, is_staff=False)


class TestStaffUpdates:

    def test_staff_fields(self):
        changes = {"status": OrderStatus.IN_PRODUCTION, "priority": "urgent", "internal_notes": "Machine 2"}
        decision = resolve_order_update(
            changes,
            OrderStatus.CONFIRMED,
            is_owner=False,
            is_staff=True,
        )

        assert decision.allowed == changes

    def test_staff_cannot_edit_items_after_draft(self):
        """Test le righe sono modificabili solo in bozza, anche per lo staff."""
        decision = resolve_order_update(
            {"items": ["..."], "notes": "ok"},
            OrderStatus.PENDING,
            is_owner=False,
            is_staff=True,
        )

        assert decision.allowed == {"notes": "ok"}
        assert decision.ignored == ("items",)
