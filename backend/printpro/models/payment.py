"""
Modelli SQLAlchemy per i Pagamenti
Progetto: PrintPro (Gestionale Tipografia)

Contiene:
- Payment: Pagamento registrato su un ordine
- PaymentRefund: Rimborso (append-only) su un pagamento
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printpro.domain.payments import PaymentStatus, PaymentType
from printpro.models import Base
from printpro.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from printpro.models.order import Order


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i pagamenti.

    Attributes:
        payment_number: Numero univoco PAY-{YYYYMMDD}-{NNNN}
        order_id: Ordine pagato
        client_id: Cliente che ha effettuato il pagamento
        amount: Importo pagato
        currency: Valuta (default MGA)
        method: mvola, card, transfer, cash, check
        status: pending, processing, completed, failed, cancelled, refunded
        payment_type: full, partial, deposit, installment
        processing_fee / platform_fee: Commissioni calcolate alla creazione
        mvola_*: Dati della transazione presso il provider
        installment_plan: Piano rate (solo installment)
        processed_at: Istante di completamento
    """

    __tablename__ = "payments"

    payment_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Numero pagamento univoco",
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MGA")

    method: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )

    payment_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentType.FULL.value,
    )

    processing_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
    )
    platform_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
    )

    # ------------------------------------------------------------
    # MVola
    # ------------------------------------------------------------
    mvola_transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mvola_phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    mvola_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mvola_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    card_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, doc="Ultime cifre e circuito della carta",
    )

    installment_plan: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, doc="Piano rate: numero rate, importo, scadenze",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    extra_data: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    order: Mapped["Order"] = relationship("Order", lazy="selectin")

    refunds: Mapped[List["PaymentRefund"]] = relationship(
        "PaymentRefund",
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PaymentRefund.created_at",
    )

    __table_args__ = (
        Index("ix_payments_order_id", "order_id"),
        Index("ix_payments_client_id", "client_id"),
        Index("ix_payments_status", "status"),
        Index("ix_payments_mvola_transaction_id", "mvola_transaction_id"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "method IN ('mvola', 'card', 'transfer', 'cash', 'check')",
            name="ck_payments_method",
        ),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed', 'cancelled', 'refunded')",
            name="ck_payments_status",
        ),
    )

    # ------------------------------------------------------------
    # Proprietà calcolate
    # ------------------------------------------------------------
    @property
    def total_fees(self) -> Decimal:
        return (self.processing_fee + self.platform_fee).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

    @property
    def net_amount(self) -> Decimal:
        """Importo al netto delle commissioni."""
        return (self.amount - self.total_fees).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def refunded_amount(self) -> Decimal:
        """Somma dei rimborsi registrati."""
        total = sum((r.amount for r in self.refunds or []), Decimal("0"))
        return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, number={self.payment_number}, status={self.status})>"


class PaymentRefund(Base, UUIDMixin):
    """
    Rimborso registrato su un pagamento. Le righe non vengono mai modificate.

    Attributes:
        payment_id: Pagamento rimborsato
        refund_id: Identificativo rimborso (REF-... o id del provider)
        amount: Importo rimborsato
        reason: Motivo
        processed_by_id: Amministratore che ha eseguito il rimborso
    """

    __tablename__ = "payment_refunds"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
    )

    refund_id: Mapped[str] = mapped_column(String(100), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    processed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    payment: Mapped["Payment"] = relationship("Payment", back_populates="refunds")

    __table_args__ = (
        Index("ix_payment_refunds_payment_id", "payment_id"),
        CheckConstraint("amount > 0", name="ck_payment_refunds_amount_positive"),
    )
