"""
Modelli SQLAlchemy per la Fatturazione
Progetto: PrintPro (Gestionale Tipografia)

Contiene:
- Invoice: Documento contabile (fattura, preventivo, nota di credito, proforma)
- InvoiceLine: Righe del documento
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printpro.models import Base
from printpro.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from printpro.models.order import Order


class InvoiceType(str, Enum):
    """Tipi di documento."""
    INVOICE = "invoice"
    QUOTE = "quote"
    CREDIT_NOTE = "credit_note"
    PROFORMA = "proforma"


class InvoiceStatus(str, Enum):
    """Stati del documento."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


INVOICE_TYPE_LABELS = {
    InvoiceType.INVOICE.value: "FACTURE",
    InvoiceType.QUOTE.value: "DEVIS",
    InvoiceType.CREDIT_NOTE.value: "AVOIR",
    InvoiceType.PROFORMA.value: "FACTURE PROFORMA",
}


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i documenti contabili.

    Attributes:
        invoice_number: Numero {TYPE}-{YYYYMM}-{NNNN}, sequenza mensile comune a tutti i tipi
        invoice_type: invoice, quote, credit_note, proforma
        status: draft, sent, paid, overdue, cancelled
        order_id: Ordine di origine (opzionale)
        client_id: Cliente intestatario
        client_snapshot: Dati cliente al momento dell'emissione
        issue_date / due_date: Data emissione e scadenza
        subtotal: Somma delle righe (senza IVA)
        discount_total: Totale sconti
        tax_total: IVA su (subtotal - sconti)
        total: Totale documento
        discounts: Sconti applicati [{description, type, value, amount}]
        pdf_path: Percorso del PDF generato (vuoto se la generazione fallisce)
    """

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Numero documento univoco",
    )

    invoice_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceType.INVOICE.value,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.DRAFT.value,
    )

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    client_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    billing_address: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
    )
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4), nullable=False, default=Decimal("0.20"),
    )
    tax_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MGA")

    discounts: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    lines: Mapped[List["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLine.line_number",
    )

    order: Mapped[Optional["Order"]] = relationship("Order", lazy="selectin")

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_invoices_client_id", "client_id"),
        Index("ix_invoices_order_id", "order_id"),
        Index("ix_invoices_due_date", "due_date"),
        Index("ix_invoices_status", "status"),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint("tax_total >= 0", name="ck_invoices_tax_total_positive"),
        CheckConstraint(
            "invoice_type IN ('invoice', 'quote', 'credit_note', 'proforma')",
            name="ck_invoices_type",
        ),
        CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'overdue', 'cancelled')",
            name="ck_invoices_status",
        ),
    )

    @property
    def type_label(self) -> str:
        """Intestazione stampata sul documento."""
        return INVOICE_TYPE_LABELS.get(self.invoice_type, "FACTURE")

    @property
    def is_overdue(self) -> bool:
        """True se il documento è scaduto e non ancora pagato o annullato."""
        return (
            self.status in (InvoiceStatus.DRAFT.value, InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value)
            and date.today() > self.due_date
        )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total})>"


class InvoiceLine(Base, UUIDMixin):
    """
    Modello per le righe del documento.

    Attributes:
        invoice_id: Documento padre
        line_number: Numero progressivo della riga
        description: Descrizione
        quantity: Quantità
        unit_price: Prezzo unitario
        tax_rate: Aliquota IVA della riga (0.20)
        service_id: Servizio del listino di origine (opzionale)
    """

    __tablename__ = "invoice_lines"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4), nullable=False, default=Decimal("0.20"),
    )

    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")

    __table_args__ = (
        Index("ix_invoice_lines_invoice_id", "invoice_id"),
        CheckConstraint("quantity > 0", name="ck_invoice_lines_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_lines_unit_price_positive"),
    )

    # ------------------------------------------------------------
    # Proprietà calcolate
    # ------------------------------------------------------------
    @property
    def subtotal(self) -> Decimal:
        """Imponibile riga = quantity × unit_price."""
        return (self.quantity * self.unit_price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def tax_amount(self) -> Decimal:
        return (self.subtotal * self.tax_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.tax_amount
