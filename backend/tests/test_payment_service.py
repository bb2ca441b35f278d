"""
Unit tests per PaymentService.

Il client MVola è un mock: nessuna chiamata HTTP.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import inspect as sa_inspect

from conftest import build_order, make_result
from printpro.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    InvalidStateError,
    PaymentGatewayError,
)
from printpro.domain.order_state import OrderStatus
from printpro.domain.payments import PaymentMethod, PaymentStatus
from printpro.models import Order, Payment
from printpro.schemas.payment import PaymentCreate, PaymentStatusUpdate, RefundCreate
from printpro.services.mvola_client import MVolaTransaction
from printpro.services.payment_service import PaymentService


@pytest.fixture
def service(mock_sequences):
    return PaymentService(sequences=mock_sequences)


@pytest.fixture
def mvola():
    client = MagicMock()
    client.initiate_payment = AsyncMock(return_value=MVolaTransaction("TX-1001", "PENDING"))
    client.check_status = AsyncMock(return_value=MVolaTransaction("TX-1001", "SUCCESS"))
    client.refund = AsyncMock(return_value={"refundId": "MVR-77", "status": "PROCESSING"})
    client.verify_signature = MagicMock(return_value=True)
    return client


def build_payment(order, method=PaymentMethod.CARD, status=PaymentStatus.COMPLETED, **kwargs) -> Payment:
    return Payment(
        id=uuid.uuid4(),
        payment_number="PAY-20240305-0001",
        order_id=order.id,
        order=order,
        client_id=order.client_id,
        amount=kwargs.get("amount", Decimal("25000.00")),
        currency="MGA",
        method=method.value,
        status=status.value,
        payment_type="full",
        processing_fee=Decimal("750.00"),
        platform_fee=Decimal("250.00"),
        mvola_transaction_id=kwargs.get("mvola_transaction_id"),
        refunds=[],
        extra_data={},
    )


# ============================================================
# Tests per create
# ============================================================


class TestCreatePayment:

    async def test_card_payment(self, service, mock_db, client_user, ready_order, mvola):
        """Test pagamento con carta: commissioni 3% + 1%, stato pending."""
        mock_db.execute.return_value = make_result(value=ready_order)
        data = PaymentCreate(order_id=ready_order.id, amount=Decimal("25000"), method=PaymentMethod.CARD)

        payment = await service.create(mock_db, data, client_user, mvola)

        assert payment.payment_number == "PAY-20240305-0001"
        assert payment.status == "pending"
        assert payment.processing_fee == Decimal("750.00")
        assert payment.platform_fee == Decimal("250.00")
        assert ready_order.payment_method == "card"
        mvola.initiate_payment.assert_not_called()

    async def test_mvola_payment_processing(self, service, mock_db, client_user, ready_order, mvola):
        mock_db.execute.return_value = make_result(value=ready_order)
        data = PaymentCreate(
            order_id=ready_order.id,
            amount=Decimal("25000"),
            method=PaymentMethod.MVOLA,
            mvola_phone_number="0341234567",
        )

        payment = await service.create(mock_db, data, client_user, mvola)

        assert payment.status == "processing"
        assert payment.mvola_transaction_id == "TX-1001"
        assert payment.processing_fee == Decimal("500.00")
        mvola.initiate_payment.assert_awaited_once()

    async def test_mvola_failure_persists_failed_payment(self, service, mock_db, client_user, ready_order, mvola):
        """Test errore del provider: pagamento salvato come failed ed errore propagato."""
        mock_db.execute.return_value = make_result(value=ready_order)
        mvola.initiate_payment.side_effect = PaymentGatewayError("Errore MVola: timeout")
        data = PaymentCreate(
            order_id=ready_order.id,
            amount=Decimal("25000"),
            method=PaymentMethod.MVOLA,
            mvola_phone_number="0341234567",
        )

        with pytest.raises(PaymentGatewayError):
            await service.create(mock_db, data, client_user, mvola)

        payment = mock_db.add.call_args[0][0]
        assert payment.status == "failed"
        assert payment.failure_reason == "Errore MVola: timeout"
        mock_db.commit.assert_awaited_once()

    async def test_amount_above_order_total(self, service, mock_db, client_user, ready_order, mvola):
        mock_db.execute.return_value = make_result(value=ready_order)
        data = PaymentCreate(order_id=ready_order.id, amount=Decimal("40000"), method=PaymentMethod.CASH)

        with pytest.raises(BusinessValidationError):
            await service.create(mock_db, data, client_user, mvola)

    async def test_other_client_order(self, service, mock_db, other_client, ready_order, mvola):
        mock_db.execute.return_value = make_result(value=ready_order)
        data = PaymentCreate(order_id=ready_order.id, amount=Decimal("1000"), method=PaymentMethod.CASH)

        with pytest.raises(AuthorizationError):
            await service.create(mock_db, data, other_client, mvola)

    async def test_cancelled_order(self, service, mock_db, client_user, flyer_service, mvola):
        cancelled = build_order(client_user, flyer_service, OrderStatus.CANCELLED)
        mock_db.execute.return_value = make_result(value=cancelled)
        data = PaymentCreate(order_id=cancelled.id, amount=Decimal("1000"), method=PaymentMethod.CASH)

        with pytest.raises(InvalidStateError):
            await service.create(mock_db, data, client_user, mvola)


# ============================================================
# Tests per stato e callback
# ============================================================


class TestPaymentStatus:

    async def test_complete_marks_order_paid(self, service, mock_db, admin_user, ready_order):
        payment = build_payment(ready_order, status=PaymentStatus.PENDING)
        mock_db.execute.return_value = make_result(value=payment)

        await service.update_status(
            mock_db, payment.id, PaymentStatusUpdate(status=PaymentStatus.COMPLETED), admin_user,
        )

        assert payment.status == "completed"
        assert payment.processed_at is not None
        assert ready_order.payment_status == "paid"

    async def test_manual_refunded_rejected(self, service, mock_db, admin_user, ready_order):
        payment = build_payment(ready_order)
        mock_db.execute.return_value = make_result(value=payment)

        with pytest.raises(InvalidStateError):
            await service.update_status(
                mock_db, payment.id, PaymentStatusUpdate(status=PaymentStatus.REFUNDED), admin_user,
            )

    async def test_callback_invalid_signature(self, service, mock_db, mvola):
        mvola.verify_signature.return_value = False

        with pytest.raises(AuthorizationError):
            await service.handle_mvola_callback(mock_db, {"transactionId": "TX-1001"}, mvola)
        mock_db.execute.assert_not_called()

    async def test_callback_success(self, service, mock_db, ready_order, mvola):
        payment = build_payment(
            ready_order, PaymentMethod.MVOLA, PaymentStatus.PROCESSING, mvola_transaction_id="TX-1001",
        )
        mock_db.execute.return_value = make_result(value=payment)

        await service.handle_mvola_callback(
            mock_db, {"transactionId": "TX-1001", "status": "SUCCESS", "signature": "x"}, mvola,
        )

        assert payment.status == "completed"
        assert payment.mvola_status == "SUCCESS"
        assert ready_order.payment_status == "paid"

    async def test_callback_refunded_without_refunds(self, service, mock_db, ready_order, mvola):
        """Test 'REFUNDED' dal provider ignorato se non ci sono rimborsi registrati."""
        ready_order.payment_status = "paid"
        payment = build_payment(ready_order, PaymentMethod.MVOLA, mvola_transaction_id="TX-1001")
        mock_db.execute.return_value = make_result(value=payment)

        await service.handle_mvola_callback(
            mock_db, {"transactionId": "TX-1001", "status": "REFUNDED", "signature": "x"}, mvola,
        )

        assert payment.status == "completed"
        assert payment.refunds == []
        assert payment.mvola_status == "REFUNDED"
        assert ready_order.payment_status == "paid"

    async def test_callback_does_not_revert_refunded(self, service, mock_db, ready_order, mvola):
        """Test un callback ripetuto non riporta indietro un pagamento rimborsato."""
        ready_order.payment_status = "refunded"
        payment = build_payment(
            ready_order, PaymentMethod.MVOLA, PaymentStatus.REFUNDED, mvola_transaction_id="TX-1001",
        )
        mock_db.execute.return_value = make_result(value=payment)

        await service.handle_mvola_callback(
            mock_db, {"transactionId": "TX-1001", "status": "SUCCESS", "signature": "x"}, mvola,
        )

        assert payment.status == "refunded"
        assert ready_order.payment_status == "refunded"

    async def test_callback_failed_leaves_processed_at_empty(self, service, mock_db, ready_order, mvola):
        payment = build_payment(
            ready_order, PaymentMethod.MVOLA, PaymentStatus.PROCESSING, mvola_transaction_id="TX-1001",
        )
        mock_db.execute.return_value = make_result(value=payment)

        await service.handle_mvola_callback(
            mock_db, {"transactionId": "TX-1001", "status": "FAILED", "signature": "x"}, mvola,
        )

        assert payment.status == "failed"
        assert payment.processed_at is None
        assert ready_order.payment_status == "failed"

    async def test_sync_status(self, service, mock_db, client_user, ready_order, mvola):
        payment = build_payment(
            ready_order, PaymentMethod.MVOLA, PaymentStatus.PROCESSING, mvola_transaction_id="TX-1001",
        )
        mock_db.execute.return_value = make_result(value=payment)

        await service.sync_mvola_status(mock_db, payment.id, client_user, mvola)

        mvola.check_status.assert_awaited_once_with("TX-1001")
        assert payment.status == "completed"


# ============================================================
# Tests per refund
# ============================================================


class TestRefund:

    async def test_partial_refund_keeps_completed(self, service, mock_db, admin_user, ready_order, mvola):
        """Test rimborso di 10000 su 25000: stato completed, un rimborso registrato."""
        payment = build_payment(ready_order)
        mock_db.execute.return_value = make_result(value=payment)

        await service.refund(
            mock_db, payment.id, RefundCreate(amount=Decimal("10000"), reason="Erreur d'impression"),
            admin_user, mvola,
        )

        assert payment.status == "completed"
        assert len(payment.refunds) == 1
        assert payment.refunds[0].amount == Decimal("10000.00")
        assert payment.refunds[0].refund_id.startswith("REF-")
        mvola.refund.assert_not_called()

    async def test_full_mvola_refund(self, service, mock_db, admin_user, ready_order, mvola):
        payment = build_payment(ready_order, PaymentMethod.MVOLA, mvola_transaction_id="TX-1001")
        mock_db.execute.return_value = make_result(value=payment)

        await service.refund(mock_db, payment.id, RefundCreate(reason="Commande annulée"), admin_user, mvola)

        mvola.refund.assert_awaited_once_with("TX-1001", Decimal("25000.00"), "Commande annulée")
        assert payment.status == "refunded"
        assert payment.refunds[0].refund_id == "MVR-77"
        assert ready_order.payment_status == "refunded"

    async def test_refund_pending_payment(self, service, mock_db, admin_user, ready_order, mvola):
        payment = build_payment(ready_order, status=PaymentStatus.PENDING)
        mock_db.execute.return_value = make_result(value=payment)

        with pytest.raises(InvalidStateError):
            await service.refund(mock_db, payment.id, RefundCreate(reason="Motif"), admin_user, mvola)


# ============================================================
# Tests per il modello
# ============================================================


class TestPaymentModel:

    def test_order_link_is_one_way(self, ready_order):
        """Test l'ordine non espone una collezione di pagamenti."""
        payment = build_payment(ready_order)

        assert payment.order is ready_order
        assert "payments" not in sa_inspect(Order).relationships
        assert sa_inspect(Payment).relationships["order"].back_populates is None
