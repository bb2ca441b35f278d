"""
Macchina a stati e totali dell'ordine
Progetto: PrintPro (Gestionale Tipografia)

Flusso di lavorazione:

    draft → quote → pending → confirmed → in_production → ready → shipped → delivered

'cancelled' è raggiungibile da ogni stato non terminale. L'ingresso in
confirmed / in_production / ready / shipped / delivered valorizza il
timestamp corrispondente una sola volta (vince la prima transizione).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from printpro.core.exceptions import InvalidStateError
from printpro.domain.money import ZERO, quantize_money, to_decimal


class OrderStatus(str, Enum):
    """Stati dell'ordine (valori wire)."""
    DRAFT = "draft"
    QUOTE = "quote"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PRODUCTION = "in_production"
    READY = "ready"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    """Stato di pagamento riportato sull'ordine."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderPriority(str, Enum):
    """Priorità di lavorazione."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


ORDER_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.DRAFT,
    OrderStatus.QUOTE,
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.READY,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Transizioni valide: solo in avanti lungo il flusso, più l'annullamento
VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset(ORDER_FLOW[index + 1:])
    | (frozenset() if status in TERMINAL_STATUSES else {OrderStatus.CANCELLED})
    for index, status in enumerate(ORDER_FLOW)
}
VALID_TRANSITIONS[OrderStatus.CANCELLED] = frozenset()

STATUS_TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.IN_PRODUCTION: "production_started_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}

# Stati in cui il documento fattura può essere generato
INVOICEABLE_STATUSES = frozenset({OrderStatus.READY, OrderStatus.DELIVERED})


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """True se la transizione è ammessa (riapplicare lo stesso stato è sempre ammesso)."""
    return current == new or new in VALID_TRANSITIONS[current]


def check_transition(
    current: OrderStatus,
    new: OrderStatus,
    enforce: bool = True,
) -> None:
    """
    Verifica una transizione di stato.

    Con enforce=False qualsiasi stato viene accettato.

    Raises:
        InvalidStateError: Transizione non consentita
    """
    if not enforce or can_transition(current, new):
        return

    allowed = sorted(s.value for s in VALID_TRANSITIONS[current])
    raise InvalidStateError(
        f"Transizione da '{current.value}' a '{new.value}' non consentita",
        extra={
            "current_status": current.value,
            "requested_status": new.value,
            "allowed": allowed,
        },
    )


def apply_status(
    order: Any,
    new_status: OrderStatus,
    now: datetime,
    enforce: bool = True,
) -> bool:
    """
    Applica un cambio di stato a un ordine (qualsiasi oggetto con attributo status).

    Il timestamp dello stato di destinazione viene valorizzato solo se
    ancora vuoto.

    Args:
        order: Ordine da aggiornare
        new_status: Stato richiesto
        now: Istante da registrare
        enforce: Applica la matrice delle transizioni

    Returns:
        True se lo stato è cambiato, False per un no-op

    Raises:
        InvalidStateError: Transizione non consentita
    """
    current = OrderStatus(order.status)
    if current == new_status:
        return False

    check_transition(current, new_status, enforce)

    order.status = new_status.value
    stamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
    if stamp_field and getattr(order, stamp_field, None) is None:
        setattr(order, stamp_field, now)
    return True


# ------------------------------------------------------------
# Totali
# ------------------------------------------------------------
@dataclass(frozen=True)
class OrderTotals:
    """Importi derivati di un ordine."""

    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total: Decimal


def compute_totals(
    line_totals: Iterable[Decimal],
    tax_rate: Decimal,
    discount_amount: Optional[Decimal] = None,
    shipping_cost: Optional[Decimal] = None,
) -> OrderTotals:
    """
    Calcola subtotale, IVA e totale.

    total = subtotal + tax − discount + shipping
    """
    subtotal = quantize_money(sum((to_decimal(t) for t in line_totals), ZERO))
    tax_amount = quantize_money(subtotal * to_decimal(tax_rate))
    discount = quantize_money(discount_amount or ZERO)
    shipping = quantize_money(shipping_cost or ZERO)
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount,
        shipping_cost=shipping,
        total=quantize_money(subtotal + tax_amount - discount + shipping),
    )


def apply_totals(order: Any, totals: OrderTotals) -> None:
    """Copia i totali calcolati sull'ordine."""
    order.subtotal = totals.subtotal
    order.tax_amount = totals.tax_amount
    order.discount_amount = totals.discount_amount
    order.shipping_cost = totals.shipping_cost
    order.total = totals.total
