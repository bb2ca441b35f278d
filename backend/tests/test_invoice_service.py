"""
Unit tests per InvoiceService e il rendering HTML dei documenti.

La conversione WeasyPrint è sostituita da un mock: i test verificano
importi, righe, numerazione e stati, non il layout del PDF.
"""

import os
import uuid
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import build_order, make_result
from printpro.core.exceptions import InvalidStateError, NotFoundError
from printpro.domain.order_state import OrderStatus
from printpro.models import Invoice, InvoiceLine
from printpro.models.invoice import InvoiceStatus, InvoiceType
from printpro.schemas.invoice import DiscountSpec, InvoiceFromOrder, InvoiceMarkPaid
from printpro.services.invoice_service import InvoiceService
from printpro.services.pdf_service import PdfService, format_amount, format_quantity


@pytest.fixture
def mock_pdf():
    pdf = MagicMock()
    pdf.render_invoice_html.return_value = "<html></html>"
    pdf.html_to_pdf.return_value = b"%PDF-1.7 test"
    return pdf


@pytest.fixture
def service(mock_sequences, mock_pdf, tmp_path):
    service = InvoiceService(sequences=mock_sequences, pdf=mock_pdf)
    service.pdf_file_path = lambda invoice: str(tmp_path / "invoices" / f"{invoice.invoice_number}.pdf")
    return service


def build_invoice(status: InvoiceStatus = InvoiceStatus.DRAFT, **kwargs) -> Invoice:
    issue_date = kwargs.get("issue_date", date.today())
    return Invoice(
        id=uuid.uuid4(),
        invoice_number=kwargs.get("invoice_number", "INVOICE-202403-0001"),
        invoice_type=kwargs.get("invoice_type", InvoiceType.INVOICE.value),
        status=status.value,
        client_id=uuid.uuid4(),
        client_snapshot={"full_name": "Rakoto Jean", "email": "client@printpro.mg", "company": "Imprimerie Tana"},
        billing_address={"street": "Lot II A 12", "city": "Antananarivo", "country": "Madagascar"},
        issue_date=issue_date,
        due_date=kwargs.get("due_date", issue_date + timedelta(days=30)),
        subtotal=Decimal("25000.00"),
        discount_total=Decimal("0.00"),
        tax_rate=Decimal("0.20"),
        tax_total=Decimal("5000.00"),
        total=Decimal("30000.00"),
        currency="MGA",
        discounts=[],
        terms="Paiement à 30 jours",
        lines=[
            InvoiceLine(
                line_number=1,
                description="Flyers A5 - 500 unité",
                quantity=Decimal("500"),
                unit_price=Decimal("50.00"),
                tax_rate=Decimal("0.20"),
            ),
        ],
    )


# ============================================================
# Tests per create_from_order
# ============================================================


class TestCreateFromOrder:

    async def test_invoice_from_ready_order(self, service, mock_db, admin_user, ready_order, mock_sequences):
        """Test fattura da ordine pronto: una riga per articolo, IVA 20%."""
        mock_db.execute.return_value = make_result(value=ready_order)

        invoice = await service.create_from_order(mock_db, ready_order.id, InvoiceFromOrder(), admin_user)

        assert invoice.invoice_number == "INVOICE-202403-0001"
        assert invoice.status == "draft"
        assert invoice.order_id == ready_order.id
        assert invoice.subtotal == Decimal("25000.00")
        assert invoice.tax_total == Decimal("5000.00")
        assert invoice.total == Decimal("30000.00")
        assert [line.description for line in invoice.lines] == ["Flyers A5 - 500 unité"]
        assert invoice.terms == "Paiement à 30 jours"
        assert invoice.due_date == date.today() + timedelta(days=30)
        assert os.path.exists(invoice.pdf_path)
        mock_sequences.next_invoice_number.assert_awaited_once_with(mock_db, "invoice")

    async def test_shipping_line_and_discount(self, service, mock_db, admin_user, client_user, flyer_service):
        """Test spese di spedizione come riga e sconto percentuale sull'imponibile."""
        order = build_order(client_user, flyer_service, OrderStatus.DELIVERED, shipping_cost=Decimal("5000"))
        mock_db.execute.return_value = make_result(value=order)
        data = InvoiceFromOrder(
            discounts=[DiscountSpec(description="Fidélité", type="percentage", value=Decimal("10"))],
        )

        invoice = await service.create_from_order(mock_db, order.id, data, admin_user)

        assert invoice.lines[-1].description == "Frais de livraison"
        assert invoice.subtotal == Decimal("30000.00")
        assert invoice.discount_total == Decimal("3000.00")
        assert invoice.tax_total == Decimal("5400.00")
        assert invoice.total == Decimal("32400.00")

    async def test_invoice_requires_ready_order(self, service, mock_db, admin_user, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        with pytest.raises(InvalidStateError):
            await service.create_from_order(mock_db, draft_order.id, InvoiceFromOrder(), admin_user)

    async def test_quote_from_draft_order(self, service, mock_db, admin_user, draft_order, mock_sequences):
        """Test un preventivo non richiede un ordine pronto."""
        mock_sequences.next_invoice_number.return_value = "QUOTE-202403-0001"
        mock_db.execute.return_value = make_result(value=draft_order)

        invoice = await service.create_from_order(
            mock_db, draft_order.id, InvoiceFromOrder(invoice_type=InvoiceType.QUOTE), admin_user,
        )

        assert invoice.invoice_type == "quote"
        assert invoice.type_label == "DEVIS"

    async def test_cancelled_order(self, service, mock_db, admin_user, client_user, flyer_service):
        order = build_order(client_user, flyer_service, OrderStatus.CANCELLED)
        mock_db.execute.return_value = make_result(value=order)

        with pytest.raises(InvalidStateError):
            await service.create_from_order(
                mock_db, order.id, InvoiceFromOrder(invoice_type=InvoiceType.PROFORMA), admin_user,
            )

    async def test_order_not_found(self, service, mock_db, admin_user):
        mock_db.execute.return_value = make_result(value=None)

        with pytest.raises(NotFoundError):
            await service.create_from_order(mock_db, uuid.uuid4(), InvoiceFromOrder(), admin_user)

    async def test_pdf_failure_does_not_block(self, service, mock_db, admin_user, ready_order, mock_pdf):
        """Test un errore di rendering lascia pdf_path vuoto."""
        mock_pdf.html_to_pdf.side_effect = RuntimeError("WeasyPrint non disponibile")
        mock_db.execute.return_value = make_result(value=ready_order)

        invoice = await service.create_from_order(mock_db, ready_order.id, InvoiceFromOrder(), admin_user)

        assert invoice.pdf_path is None
        assert invoice.total == Decimal("30000.00")


# ============================================================
# Tests per le modifiche di stato
# ============================================================


class TestInvoiceStatus:

    async def test_mark_sent(self, service, mock_db):
        invoice = build_invoice()
        mock_db.execute.return_value = make_result(value=invoice)

        await service.mark_sent(mock_db, invoice.id)

        assert invoice.status == "sent"
        assert invoice.sent_at is not None

    async def test_mark_paid_twice(self, service, mock_db):
        invoice = build_invoice(InvoiceStatus.PAID)
        mock_db.execute.return_value = make_result(value=invoice)

        with pytest.raises(InvalidStateError):
            await service.mark_paid(mock_db, invoice.id, InvoiceMarkPaid())

    async def test_mark_paid(self, service, mock_db):
        invoice = build_invoice(InvoiceStatus.SENT)
        mock_db.execute.return_value = make_result(value=invoice)

        await service.mark_paid(mock_db, invoice.id, InvoiceMarkPaid(payment_method="mvola"))

        assert invoice.status == "paid"
        assert invoice.payment_method == "mvola"
        assert invoice.paid_at is not None

    async def test_cancel_paid(self, service, mock_db):
        invoice = build_invoice(InvoiceStatus.PAID)
        mock_db.execute.return_value = make_result(value=invoice)

        with pytest.raises(InvalidStateError):
            await service.cancel(mock_db, invoice.id)

    async def test_overdue_marks_sent_invoices(self, service, mock_db):
        """Test le fatture inviate scadute passano in overdue."""
        past = date.today() - timedelta(days=60)
        sent = build_invoice(InvoiceStatus.SENT, issue_date=past, due_date=past + timedelta(days=30))
        draft = build_invoice(InvoiceStatus.DRAFT, issue_date=past, due_date=past + timedelta(days=30))
        mock_db.execute.return_value = make_result(values=[sent, draft])

        invoices = await service.get_overdue(mock_db)

        assert invoices == [sent, draft]
        assert sent.status == "overdue"
        assert draft.status == "draft"
        assert sent.is_overdue


# ============================================================
# Tests per il rendering HTML
# ============================================================


class TestInvoiceHtml:

    def test_format_amount(self):
        assert format_amount(Decimal("1234567.5")) == "1 234 567,50"
        assert format_amount(None) == "0,00"

    def test_render_html(self):
        """Test il template riporta numero, intestatario, righe e totale."""
        html = PdfService().render_invoice_html(build_invoice())

        assert "INVOICE-202403-0001" in html
        assert "FACTURE" in html
        assert "Imprimerie Tana" in html
        assert "Flyers A5 - 500 unité" in html
        assert "30 000,00" in html

    def test_format_quantity(self):
        assert format_quantity(Decimal("500.00")) == "500"
        assert format_quantity(Decimal("2.50")) == "2,5"
        assert format_quantity(Decimal("0.20") * 100) == "20"
