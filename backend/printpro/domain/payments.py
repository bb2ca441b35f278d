"""
Regole di dominio dei pagamenti
Progetto: PrintPro (Gestionale Tipografia)

Commissioni, pianificazione dei rimborsi e mappatura degli stati
restituiti dal provider MVola.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from printpro.core.exceptions import BusinessValidationError, InvalidStateError
from printpro.domain.money import ZERO, quantize_money, to_decimal


class PaymentMethod(str, Enum):
    """Metodi di pagamento accettati."""
    MVOLA = "mvola"
    CARD = "card"
    TRANSFER = "transfer"
    CASH = "cash"
    CHECK = "check"


class PaymentStatus(str, Enum):
    """Stati del pagamento (valori wire)."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentType(str, Enum):
    """Tipologia del pagamento rispetto al totale ordine."""
    FULL = "full"
    PARTIAL = "partial"
    DEPOSIT = "deposit"
    INSTALLMENT = "installment"


MVOLA_PROCESSING_RATE = Decimal("0.02")
DEFAULT_PROCESSING_RATE = Decimal("0.03")
PLATFORM_RATE = Decimal("0.01")


@dataclass(frozen=True)
class FeeBreakdown:
    """Commissioni calcolate su un pagamento."""

    processing_fee: Decimal
    platform_fee: Decimal

    @property
    def total_fees(self) -> Decimal:
        return self.processing_fee + self.platform_fee


def calculate_fees(amount: Decimal, method: PaymentMethod) -> FeeBreakdown:
    """
    Commissione di elaborazione 2% per MVola, 3% per gli altri metodi,
    più commissione piattaforma 1%.

    Es: 25000 via carta -> processing 750, platform 250, totale 1000.
    """
    amount = to_decimal(amount)
    rate = MVOLA_PROCESSING_RATE if method == PaymentMethod.MVOLA else DEFAULT_PROCESSING_RATE
    return FeeBreakdown(
        processing_fee=quantize_money(amount * rate),
        platform_fee=quantize_money(amount * PLATFORM_RATE),
    )


# ------------------------------------------------------------
# Rimborsi
# ------------------------------------------------------------
@dataclass(frozen=True)
class RefundPlan:
    """Rimborso accettato, prima della registrazione."""

    amount: Decimal
    reason: str
    refunded_total: Decimal
    fully_refunded: bool


def plan_refund(
    payment_amount: Decimal,
    status: PaymentStatus,
    previous_refunds: Iterable[Decimal],
    reason: Optional[str],
    amount: Optional[Decimal] = None,
) -> RefundPlan:
    """
    Valida una richiesta di rimborso.

    L'importo predefinito è l'intero residuo rimborsabile. Lo stato diventa
    'refunded' solo quando il totale rimborsato raggiunge l'importo pagato.

    Args:
        payment_amount: Importo originale del pagamento
        status: Stato corrente del pagamento
        previous_refunds: Importi già rimborsati
        reason: Motivo (obbligatorio)
        amount: Importo richiesto (None = residuo)

    Raises:
        BusinessValidationError: Motivo mancante o importo non positivo
        InvalidStateError: Pagamento non completato o importo oltre il residuo
    """
    if not reason or not reason.strip():
        raise BusinessValidationError("Il motivo del rimborso è obbligatorio")

    if status != PaymentStatus.COMPLETED:
        raise InvalidStateError(
            "Solo i pagamenti completati possono essere rimborsati",
            extra={"status": status.value},
        )

    payment_amount = to_decimal(payment_amount)
    already = quantize_money(sum((to_decimal(r) for r in previous_refunds), ZERO))
    remaining = payment_amount - already

    requested = quantize_money(remaining if amount is None else amount)
    if requested <= ZERO:
        raise BusinessValidationError("L'importo del rimborso deve essere positivo")

    if requested > remaining:
        raise InvalidStateError(
            f"Importo del rimborso ({requested}) superiore al residuo rimborsabile ({remaining})",
            extra={
                "requested": str(requested),
                "remaining": str(remaining),
                "payment_amount": str(payment_amount),
            },
        )

    refunded_total = already + requested
    return RefundPlan(
        amount=requested,
        reason=reason.strip(),
        refunded_total=refunded_total,
        fully_refunded=refunded_total >= payment_amount,
    )


# ------------------------------------------------------------
# MVola
# ------------------------------------------------------------
MVOLA_STATUS_MAP: dict[str, PaymentStatus] = {
    "PENDING": PaymentStatus.PENDING,
    "PROCESSING": PaymentStatus.PROCESSING,
    "SUCCESS": PaymentStatus.COMPLETED,
    "COMPLETED": PaymentStatus.COMPLETED,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.CANCELLED,
    "REFUNDED": PaymentStatus.REFUNDED,
}


def map_mvola_status(provider_status: Optional[str]) -> PaymentStatus:
    """Stato provider -> stato interno; valori sconosciuti diventano 'failed'."""
    return MVOLA_STATUS_MAP.get((provider_status or "").upper(), PaymentStatus.FAILED)
