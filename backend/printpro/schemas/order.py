"""
Schemas Pydantic per gli Ordini
Progetto: PrintPro (Gestionale Tipografia)

Schemas per validazione e serializzazione di ordini e righe d'ordine.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from printpro.domain.order_state import OrderPaymentStatus, OrderPriority, OrderStatus
from printpro.domain.payments import PaymentMethod
from printpro.domain.snapshots import Address, ClientSnapshot, ServiceSnapshot
from printpro.schemas.common import PaginatedList, PeriodCount


# -------------------------------------------------------------------
# Righe d'ordine
# -------------------------------------------------------------------
class OrderItemCreate(BaseModel):
    """
    Riga richiesta dal cliente. Prezzi e snapshot vengono calcolati dal server.

    Attributes:
        service_id: Servizio del listino
        quantity: Quantità (entro i limiti del servizio)
        options: Mappa id opzione -> valore scelto
        files: Riferimenti ai file allegati
        notes: Note sulla riga
    """

    service_id: UUID
    quantity: int = Field(..., gt=0)
    options: dict[str, Any] = Field(default_factory=dict)
    files: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: UUID
    service_snapshot: ServiceSnapshot
    quantity: int
    options: dict[str, Any]
    unit_price: Decimal
    total_price: Decimal
    files: list[str]
    notes: Optional[str] = None


# -------------------------------------------------------------------
# Ordini
# -------------------------------------------------------------------
class OrderCreate(BaseModel):
    """
    Schema per la creazione di un ordine (sempre in stato draft).

    Se shipping_address è assente viene usato l'indirizzo di fatturazione.
    """

    items: list[OrderItemCreate] = Field(..., min_length=1)
    billing_address: Address
    shipping_address: Optional[Address] = None
    notes: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[PaymentMethod] = None


class OrderUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un ordine.

    Quali campi vengono effettivamente applicati dipende da ruolo del
    chiamante e stato dell'ordine: vedi domain/permissions.py.
    """

    # Campi del cliente (solo in draft)
    items: Optional[list[OrderItemCreate]] = Field(None, min_length=1)
    notes: Optional[str] = Field(None, max_length=2000)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None

    # Campi riservati allo staff
    status: Optional[OrderStatus] = None
    priority: Optional[OrderPriority] = None
    assigned_to_id: Optional[UUID] = None
    internal_notes: Optional[str] = Field(None, max_length=2000)
    estimated_delivery_date: Optional[date] = None
    discount_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    shipping_cost: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    client_id: UUID
    client_snapshot: ClientSnapshot
    status: OrderStatus
    items: list[OrderItemRead]

    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total: Decimal

    notes: Optional[str] = None
    internal_notes: Optional[str] = Field(None, description="Visibile solo allo staff")
    billing_address: Address
    shipping_address: Optional[Address] = None

    payment_status: OrderPaymentStatus
    payment_method: Optional[str] = None
    priority: OrderPriority
    assigned_to_id: Optional[UUID] = None

    confirmed_at: Optional[datetime] = None
    production_started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    estimated_delivery_date: Optional[date] = None

    quote_document: Optional[str] = None
    invoice_document: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class OrderList(PaginatedList):
    items: list[OrderRead] = Field(default_factory=list)


class OrderDocumentResponse(BaseModel):
    """Riferimento al documento (preventivo o fattura) generato per un ordine."""

    order_id: UUID
    order_number: str
    status: OrderStatus
    document: str


class OrderStats(BaseModel):
    """Statistiche aggregate sugli ordini."""

    total_orders: int
    total_revenue: Decimal
    average_order_value: Decimal
    by_status: dict[str, int]
    by_month: list[PeriodCount]


__all__ = [
    "OrderItemCreate",
    "OrderItemRead",
    "OrderCreate",
    "OrderUpdate",
    "OrderRead",
    "OrderList",
    "OrderDocumentResponse",
    "OrderStats",
]
