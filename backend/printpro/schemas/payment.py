"""
Schemas Pydantic per i Pagamenti
Progetto: PrintPro (Gestionale Tipografia)

Schemas per creazione, aggiornamento di stato, rimborsi e report.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from printpro.domain.payments import PaymentMethod, PaymentStatus, PaymentType
from printpro.schemas.common import PaginatedList, PeriodCount


class InstallmentPlan(BaseModel):
    """Piano di pagamento rateale."""

    installments: int = Field(..., ge=2, le=24, description="Numero di rate")
    frequency: str = Field("monthly", pattern="^(weekly|monthly)$")
    first_due_date: Optional[date] = None


class PaymentCreate(BaseModel):
    """
    Schema per la creazione di un pagamento da parte del cliente.

    Attributes:
        order_id: Ordine da pagare (deve appartenere al cliente)
        amount: Importo
        method: mvola, card, transfer, cash, check
        payment_type: full, partial, deposit, installment
        mvola_phone_number: Numero MVola (obbligatorio per method=mvola)
        installment_plan: Piano rate (obbligatorio per payment_type=installment)
    """

    order_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: str = Field("MGA", min_length=3, max_length=3)
    method: PaymentMethod
    payment_type: PaymentType = PaymentType.FULL
    mvola_phone_number: Optional[str] = Field(None, pattern=r"^\+?[0-9 ]{8,20}$")
    installment_plan: Optional[InstallmentPlan] = None
    description: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_method_fields(self) -> "PaymentCreate":
        if self.method == PaymentMethod.MVOLA and not self.mvola_phone_number:
            raise ValueError("Il numero MVola è obbligatorio per i pagamenti mvola")
        if self.payment_type == PaymentType.INSTALLMENT and self.installment_plan is None:
            raise ValueError("Il piano rate è obbligatorio per i pagamenti a rate")
        return self


class PaymentStatusUpdate(BaseModel):
    """Aggiornamento di stato da parte di un amministratore."""

    status: PaymentStatus
    failure_reason: Optional[str] = Field(None, max_length=500)


class RefundCreate(BaseModel):
    """
    Richiesta di rimborso.

    Se amount è assente viene rimborsato l'intero residuo.
    """

    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentRefundRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    refund_id: str
    amount: Decimal
    reason: str
    processed_by_id: Optional[UUID] = None
    created_at: datetime


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_number: str
    order_id: UUID
    client_id: UUID
    amount: Decimal
    currency: str
    method: PaymentMethod
    status: PaymentStatus
    payment_type: PaymentType
    processing_fee: Decimal
    platform_fee: Decimal
    mvola_transaction_id: Optional[str] = None
    mvola_phone_number: Optional[str] = None
    mvola_status: Optional[str] = None
    installment_plan: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    refunds: list[PaymentRefundRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field
    def total_fees(self) -> Decimal:
        return self.processing_fee + self.platform_fee

    @computed_field
    def refunded_amount(self) -> Decimal:
        return sum((r.amount for r in self.refunds), Decimal("0"))


class PaymentList(PaginatedList):
    items: list[PaymentRead] = Field(default_factory=list)


class MethodBreakdown(BaseModel):
    method: str
    count: int
    amount: Decimal
    fees: Decimal


class PaymentStats(BaseModel):
    """Statistiche aggregate sui pagamenti."""

    total_payments: int
    completed_amount: Decimal
    pending_amount: Decimal
    refunded_amount: Decimal
    total_fees: Decimal
    by_method: list[MethodBreakdown]
    by_month: list[PeriodCount]


class FinancialReport(BaseModel):
    """Report finanziario su un intervallo di date."""

    date_from: date
    date_to: date
    currency: str
    total_revenue: Decimal
    processing_fees: Decimal
    platform_fees: Decimal
    refunded_amount: Decimal
    net_revenue: Decimal
    payments_count: int
    by_method: list[MethodBreakdown]


__all__ = [
    "InstallmentPlan",
    "PaymentCreate",
    "PaymentStatusUpdate",
    "RefundCreate",
    "PaymentRefundRead",
    "PaymentRead",
    "PaymentList",
    "MethodBreakdown",
    "PaymentStats",
    "FinancialReport",
]
