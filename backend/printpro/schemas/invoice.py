"""
Schemas Pydantic per la Fatturazione
Progetto: PrintPro (Gestionale Tipografia)

Schemas per fatture, preventivi, note di credito e proforma.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from printpro.domain.payments import PaymentMethod
from printpro.domain.snapshots import Address, ClientSnapshot
from printpro.models.invoice import InvoiceStatus, InvoiceType
from printpro.schemas.common import PaginatedList


class DiscountSpec(BaseModel):
    """
    Sconto applicato al documento.

    Attributes:
        description: Motivo dello sconto
        type: percentage (sul subtotale) o fixed (importo)
        value: Percentuale (0-100) o importo
    """

    description: str = Field(..., min_length=1, max_length=200)
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def validate_percentage(self) -> "DiscountSpec":
        if self.type == "percentage" and self.value > 100:
            raise ValueError("Uno sconto percentuale non può superare il 100%")
        return self


class InvoiceLineCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    service_id: Optional[UUID] = None


class InvoiceFromOrder(BaseModel):
    """Generazione di un documento a partire da un ordine."""

    invoice_type: InvoiceType = InvoiceType.INVOICE
    discounts: list[DiscountSpec] = Field(default_factory=list)
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)


class InvoiceCreate(BaseModel):
    """Creazione manuale di un documento (solo staff)."""

    client_id: UUID
    invoice_type: InvoiceType = InvoiceType.INVOICE
    lines: list[InvoiceLineCreate] = Field(..., min_length=1)
    discounts: list[DiscountSpec] = Field(default_factory=list)
    billing_address: Optional[Address] = None
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)


class InvoiceUpdate(BaseModel):
    """Modifica di un documento non ancora pagato."""

    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)
    billing_address: Optional[Address] = None


class InvoiceMarkPaid(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    paid_at: Optional[datetime] = None


class InvoiceLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    line_number: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    service_id: Optional[UUID] = None


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    invoice_type: InvoiceType
    type_label: str
    status: InvoiceStatus
    order_id: Optional[UUID] = None
    client_id: UUID
    client_snapshot: ClientSnapshot
    billing_address: Optional[Address] = None
    issue_date: date
    due_date: date
    subtotal: Decimal
    discount_total: Decimal
    tax_rate: Decimal
    tax_total: Decimal
    total: Decimal
    currency: str
    discounts: list[dict[str, Any]]
    lines: list[InvoiceLineRead]
    notes: Optional[str] = None
    terms: Optional[str] = None
    pdf_path: Optional[str] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    created_at: datetime


class InvoiceList(PaginatedList):
    items: list[InvoiceRead] = Field(default_factory=list)


class InvoiceStatusCount(BaseModel):
    status: str
    count: int
    amount: Decimal


class InvoiceStats(BaseModel):
    """Riepilogo importi fatturati, incassati e in sospeso."""

    total_invoices: int
    total_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    overdue_amount: Decimal
    by_status: list[InvoiceStatusCount]


__all__ = [
    "DiscountSpec",
    "InvoiceLineCreate",
    "InvoiceFromOrder",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceMarkPaid",
    "InvoiceLineRead",
    "InvoiceRead",
    "InvoiceList",
    "InvoiceStatusCount",
    "InvoiceStats",
]
