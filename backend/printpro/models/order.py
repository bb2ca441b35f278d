"""
Modelli SQLAlchemy per gli Ordini
Progetto: PrintPro (Gestionale Tipografia)

Contiene:
- Order: Ordine del cliente, con totali derivati e timestamp di stato
- OrderItem: Riga d'ordine (servizio, quantità, opzioni, prezzi)

Cliente e servizio vengono copiati in snapshot JSON al momento della
creazione, così l'ordine conserva i dati storici anche se listino o
anagrafica cambiano.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
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

from printpro.domain.order_state import OrderPaymentStatus, OrderPriority, OrderStatus
from printpro.models import Base
from printpro.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from printpro.models.user import User


class Order(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli ordini.

    Attributes:
        order_number: Numero univoco PP{YYYYMMDD}{NNNN}, assegnato una sola volta
        client_id: Cliente proprietario
        client_snapshot: Copia dei dati cliente (ClientSnapshot)
        status: Stato di lavorazione
        subtotal / tax_amount / discount_amount / shipping_cost / total:
            Importi, con total = subtotal + tax - discount + shipping
        confirmed_at ... delivered_at: Timestamp valorizzati alla prima
            transizione nel relativo stato
        billing_address / shipping_address: Indirizzi (Address)
        payment_status: Stato di pagamento (pending, paid, failed, refunded)
        priority: Priorità (low, normal, high, urgent)
        assigned_to_id: Dipendente assegnato
        quote_document / invoice_document: Nomi dei documenti generati
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        doc="Numero ordine univoco",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente proprietario",
    )

    client_snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        doc="Snapshot del cliente al momento dell'ordine",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.DRAFT.value,
        doc="Stato dell'ordine",
    )

    # ------------------------------------------------------------
    # Importi
    # ------------------------------------------------------------
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        doc="Somma dei totali riga",
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        doc="IVA sul subtotale",
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        doc="Sconto",
    )
    shipping_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        doc="Spese di spedizione",
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"),
        doc="Totale ordine",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="Note del cliente")
    internal_notes: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, doc="Note interne (solo staff)",
    )

    # ------------------------------------------------------------
    # Timestamp di stato
    # ------------------------------------------------------------
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    production_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    estimated_delivery_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True, doc="Data di consegna prevista",
    )

    billing_address: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, doc="Indirizzo di fatturazione",
    )
    shipping_address: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, doc="Indirizzo di spedizione",
    )

    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderPaymentStatus.PENDING.value,
        doc="Stato di pagamento dell'ordine",
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    quote_document: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    invoice_document: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Dipendente assegnato",
    )

    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=OrderPriority.NORMAL.value,
        doc="Priorità di lavorazione",
    )

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
    )

    client: Mapped["User"] = relationship(
        "User",
        foreign_keys=[client_id],
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_orders_client_id", "client_id"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
        CheckConstraint("subtotal >= 0", name="ck_orders_subtotal_positive"),
        CheckConstraint("tax_amount >= 0", name="ck_orders_tax_positive"),
        CheckConstraint("discount_amount >= 0", name="ck_orders_discount_positive"),
        CheckConstraint("shipping_cost >= 0", name="ck_orders_shipping_positive"),
        CheckConstraint(
            "status IN ('draft', 'quote', 'pending', 'confirmed', 'in_production', "
            "'ready', 'shipped', 'delivered', 'cancelled')",
            name="ck_orders_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="ck_orders_payment_status",
        ),
        CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')",
            name="ck_orders_priority",
        ),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.order_number}, status={self.status})>"


class OrderItem(Base, UUIDMixin):
    """
    Modello per le righe d'ordine.

    Attributes:
        order_id: Ordine padre
        position: Posizione della riga nell'ordine
        service_id: Servizio del listino
        service_snapshot: Copia del servizio (ServiceSnapshot)
        quantity: Quantità (entro i limiti del servizio)
        options: Mappa id opzione -> valore scelto
        unit_price: Prezzo unitario calcolato
        total_price: unit_price × quantity
        files: Riferimenti ai file allegati
    """

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )

    service_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    options: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    files: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        Index("ix_order_items_order_id", "order_id"),
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, service_id={self.service_id}, quantity={self.quantity})>"
