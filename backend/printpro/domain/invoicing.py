"""
Calcolo importi dei documenti contabili
Progetto: PrintPro (Gestionale Tipografia)

Gli sconti riducono l'imponibile; l'IVA si applica a (subtotale - sconti):

    discount_total = Σ sconti (percentuali sul subtotale, fissi per importo)
    tax_total      = (subtotal - discount_total) × tax_rate
    total          = subtotal - discount_total + tax_total
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from printpro.domain.money import ZERO, quantize_money, to_decimal

DEFAULT_PAYMENT_TERMS = "Paiement à 30 jours"


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    total: Decimal
    discounts: tuple[dict[str, Any], ...]


def discount_amount(subtotal: Decimal, discount: Mapping[str, Any]) -> Decimal:
    """Importo di un singolo sconto."""
    value = to_decimal(discount["value"])
    if discount["type"] == "percentage":
        return quantize_money(subtotal * value / 100)
    return quantize_money(value)


def compute_invoice_totals(
    line_subtotals: Iterable[Decimal],
    discounts: Iterable[Mapping[str, Any]],
    tax_rate: Decimal,
) -> InvoiceTotals:
    """
    Calcola i totali del documento.

    Lo sconto complessivo è limitato al subtotale: l'imponibile non
    diventa mai negativo.

    Returns:
        InvoiceTotals con la lista sconti arricchita dell'importo calcolato
    """
    subtotal = quantize_money(sum((to_decimal(s) for s in line_subtotals), ZERO))

    applied = []
    discount_total = ZERO
    for discount in discounts:
        amount = discount_amount(subtotal, discount)
        discount_total += amount
        applied.append({
            "description": discount["description"],
            "type": discount["type"],
            "value": str(to_decimal(discount["value"])),
            "amount": str(amount),
        })
    discount_total = min(quantize_money(discount_total), subtotal)

    taxable = subtotal - discount_total
    tax_total = quantize_money(taxable * to_decimal(tax_rate))
    return InvoiceTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax_total=tax_total,
        total=quantize_money(taxable + tax_total),
        discounts=tuple(applied),
    )


def line_description(service_name: str, quantity: int, unit: str) -> str:
    """'Flyers A5 - 500 unité'"""
    return f"{service_name} - {quantity} {unit}"
