"""
Unit tests per la macchina a stati e i totali dell'ordine.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from printpro.core.exceptions import InvalidStateError
from printpro.domain.order_state import (
    OrderStatus,
    apply_status,
    can_transition,
    check_transition,
    compute_totals,
)

NOW = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)


def _order(status: OrderStatus, **kwargs):
    fields = {
        "status": status.value,
        "confirmed_at": None,
        "production_started_at": None,
        "ready_at": None,
        "shipped_at": None,
        "delivered_at": None,
    }
    fields.update(kwargs)
    return SimpleNamespace(**fields)


class TestTransitions:
    """Tests per la matrice delle transizioni."""

    def test_forward_transitions_allowed(self):
        """Test avanzamento lungo il flusso, anche saltando stati."""
        assert can_transition(OrderStatus.DRAFT, OrderStatus.QUOTE)
        assert can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
        assert can_transition(OrderStatus.CONFIRMED, OrderStatus.READY)

    def test_backward_transition_rejected(self):
        """Test ritorno a uno stato precedente."""
        assert not can_transition(OrderStatus.DELIVERED, OrderStatus.PENDING)

        with pytest.raises(InvalidStateError) as exc_info:
            check_transition(OrderStatus.READY, OrderStatus.CONFIRMED)
        assert exc_info.value.extra["current_status"] == "ready"
        assert exc_info.value.extra["requested_status"] == "confirmed"

    def test_cancel_from_non_terminal(self):
        """Test annullamento da ogni stato non terminale."""
        for status in (OrderStatus.DRAFT, OrderStatus.IN_PRODUCTION, OrderStatus.SHIPPED):
            assert can_transition(status, OrderStatus.CANCELLED)

    def test_terminal_states(self):
        """Test da delivered e cancelled non si esce."""
        assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)
        assert not can_transition(OrderStatus.CANCELLED, OrderStatus.DRAFT)

    def test_enforce_disabled(self):
        """Test con enforce=False ogni transizione è accettata."""
        check_transition(OrderStatus.DELIVERED, OrderStatus.DRAFT, enforce=False)


class TestApplyStatus:
    """Tests per timestamp e no-op."""

    def test_sets_timestamp(self):
        order = _order(OrderStatus.PENDING)

        assert apply_status(order, OrderStatus.CONFIRMED, NOW) is True
        assert order.status == "confirmed"
        assert order.confirmed_at == NOW

    def test_same_status_is_noop(self):
        order = _order(OrderStatus.READY, ready_at=NOW)

        assert apply_status(order, OrderStatus.READY, NOW + timedelta(hours=1)) is False
        assert order.ready_at == NOW

    def test_first_transition_wins(self):
        """Test il timestamp già valorizzato non viene sovrascritto."""
        earlier = NOW - timedelta(days=1)
        order = _order(OrderStatus.CONFIRMED, production_started_at=earlier)

        apply_status(order, OrderStatus.IN_PRODUCTION, NOW)

        assert order.production_started_at == earlier

    def test_invalid_transition_leaves_order_unchanged(self):
        order = _order(OrderStatus.SHIPPED)

        with pytest.raises(InvalidStateError):
            apply_status(order, OrderStatus.PENDING, NOW)
        assert order.status == "shipped"


class TestComputeTotals:
    """total = subtotal + tax - discount + shipping"""

    def test_totals_with_tax(self):
        totals = compute_totals([Decimal("25000")], Decimal("0.20"))

        assert totals.subtotal == Decimal("25000.00")
        assert totals.tax_amount == Decimal("5000.00")
        assert totals.total == Decimal("30000.00")

    def test_totals_with_discount_and_shipping(self):
        totals = compute_totals(
            [Decimal("10000"), Decimal("5000")],
            Decimal("0.20"),
            discount_amount=Decimal("1000"),
            shipping_cost=Decimal("2500"),
        )

        assert totals.subtotal == Decimal("15000.00")
        assert totals.tax_amount == Decimal("3000.00")
        assert totals.total == Decimal("19500.00")

    def test_empty_order(self):
        totals = compute_totals([], Decimal("0.20"))

        assert totals.total == Decimal("0.00")
