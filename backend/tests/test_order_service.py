"""
Unit tests per OrderService.

La sessione è un AsyncMock: db.execute() restituisce i risultati
preparati con make_result().
"""

from decimal import Decimal

import pytest

from conftest import build_order, make_result
from printpro.core.exceptions import (
    AuthorizationError,
    InvalidQuantityError,
    InvalidStateError,
    NotFoundError,
)
from printpro.domain.order_state import OrderStatus
from printpro.domain.snapshots import Address
from printpro.schemas.order import OrderCreate, OrderItemCreate, OrderUpdate
from printpro.services.order_service import OrderService


@pytest.fixture
def service(mock_sequences):
    return OrderService(sequences=mock_sequences)


@pytest.fixture
def address():
    return Address(street="Lot II A 12 Analakely", city="Antananarivo", postal_code="101")


# ============================================================
# Tests per create
# ============================================================


class TestCreateOrder:

    async def test_create_computes_totals(self, service, mock_db, client_user, flyer_service, address):
        """Test 500 flyers a 50 = 25000, IVA 20% = 5000, totale 30000."""
        mock_db.execute.return_value = make_result(value=flyer_service)
        data = OrderCreate(
            items=[OrderItemCreate(service_id=flyer_service.id, quantity=500)],
            billing_address=address,
        )

        order = await service.create(mock_db, data, client_user)

        assert order.order_number == "PP202403050001"
        assert order.status == "draft"
        assert order.subtotal == Decimal("25000.00")
        assert order.tax_amount == Decimal("5000.00")
        assert order.total == Decimal("30000.00")
        assert order.items[0].unit_price == Decimal("50.00")
        mock_db.add.assert_called_once_with(order)
        mock_db.flush.assert_awaited()

    async def test_create_stores_snapshots(self, service, mock_db, client_user, flyer_service, address):
        """Test snapshot di cliente e servizio, spedizione = fatturazione."""
        mock_db.execute.return_value = make_result(value=flyer_service)
        data = OrderCreate(
            items=[OrderItemCreate(service_id=flyer_service.id, quantity=200, options={"lamination": True})],
            billing_address=address,
        )

        order = await service.create(mock_db, data, client_user)

        assert order.client_snapshot["email"] == client_user.email
        assert order.items[0].service_snapshot["name"] == "Flyers A5"
        assert order.items[0].unit_price == Decimal("60.00")
        assert order.shipping_address == order.billing_address

    async def test_create_invalid_quantity(self, service, mock_db, client_user, flyer_service, address):
        """Test quantità 50 sotto il minimo di 100."""
        mock_db.execute.return_value = make_result(value=flyer_service)
        data = OrderCreate(
            items=[OrderItemCreate(service_id=flyer_service.id, quantity=50)],
            billing_address=address,
        )

        with pytest.raises(InvalidQuantityError):
            await service.create(mock_db, data, client_user)
        mock_db.add.assert_not_called()

    async def test_create_unknown_service(self, service, mock_db, client_user, flyer_service, address):
        mock_db.execute.return_value = make_result(value=None)
        data = OrderCreate(
            items=[OrderItemCreate(service_id=flyer_service.id, quantity=500)],
            billing_address=address,
        )

        with pytest.raises(NotFoundError):
            await service.create(mock_db, data, client_user)


# ============================================================
# Tests per update
# ============================================================


class TestUpdateOrder:

    async def test_client_status_change_ignored(self, service, mock_db, client_user, draft_order):
        """Test il cliente non può confermare il proprio ordine."""
        mock_db.execute.return_value = make_result(value=draft_order)

        order = await service.update(
            mock_db, draft_order.id, OrderUpdate(status=OrderStatus.CONFIRMED, notes="Urgent"), client_user,
        )

        assert order.status == "draft"
        assert order.notes == "Urgent"
        assert order.confirmed_at is None

    async def test_staff_confirms_order(self, service, mock_db, employee_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        order = await service.update(
            mock_db, draft_order.id, OrderUpdate(status=OrderStatus.CONFIRMED), employee_user,
        )

        assert order.status == "confirmed"
        assert order.confirmed_at is not None

    async def test_staff_discount_recalculates_total(self, service, mock_db, employee_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        order = await service.update(
            mock_db,
            draft_order.id,
            OrderUpdate(discount_amount=Decimal("2000"), shipping_cost=Decimal("3000")),
            employee_user,
        )

        assert order.total == Decimal("31000.00")

    async def test_backward_transition(self, service, mock_db, employee_user, client_user, flyer_service):
        delivered = build_order(client_user, flyer_service, OrderStatus.DELIVERED)
        mock_db.execute.return_value = make_result(value=delivered)

        with pytest.raises(InvalidStateError):
            await service.update(
                mock_db, delivered.id, OrderUpdate(status=OrderStatus.PENDING), employee_user,
            )

    async def test_other_client_rejected(self, service, mock_db, other_client, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        with pytest.raises(AuthorizationError):
            await service.update(mock_db, draft_order.id, OrderUpdate(notes="x"), other_client)


# ============================================================
# Tests per delete e documenti
# ============================================================


class TestDeleteAndDocuments:

    async def test_client_deletes_draft(self, service, mock_db, client_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        await service.delete(mock_db, draft_order.id, client_user)

        mock_db.delete.assert_awaited_once_with(draft_order)

    async def test_cannot_delete_confirmed(self, service, mock_db, client_user, flyer_service):
        confirmed = build_order(client_user, flyer_service, OrderStatus.CONFIRMED)
        mock_db.execute.return_value = make_result(value=confirmed)

        with pytest.raises(InvalidStateError):
            await service.delete(mock_db, confirmed.id, client_user)

    async def test_quote_document(self, service, mock_db, client_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        order = await service.generate_quote(mock_db, draft_order.id, client_user)

        assert order.status == "quote"
        assert order.quote_document == "quote-PP202403050001.pdf"

    async def test_invoice_document_requires_ready(self, service, mock_db, client_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        with pytest.raises(InvalidStateError):
            await service.generate_invoice_document(mock_db, draft_order.id, client_user)

    async def test_invoice_document_ready(self, service, mock_db, admin_user, ready_order):
        mock_db.execute.return_value = make_result(value=ready_order)

        order = await service.generate_invoice_document(mock_db, ready_order.id, admin_user)

        assert order.invoice_document == "invoice-PP202403050001.pdf"
