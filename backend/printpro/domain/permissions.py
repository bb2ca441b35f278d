"""
Regole di modifica dell'ordine per ruolo
Progetto: PrintPro (Gestionale Tipografia)

- Il cliente proprietario modifica righe, note e indirizzi solo in 'draft'.
- Admin e dipendenti modificano stato, priorità, assegnazione, note
  interne, consegna prevista, sconto e spese di spedizione.
- Un cliente non proprietario non può toccare l'ordine.

I campi bloccati inviati da un cliente vengono ignorati; con strict=True
la richiesta viene invece rifiutata con AuthorizationError.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from printpro.core.exceptions import AuthorizationError
from printpro.domain.order_state import OrderStatus

CLIENT_EDITABLE_FIELDS = frozenset({
    "items",
    "notes",
    "billing_address",
    "shipping_address",
})

STAFF_ONLY_FIELDS = frozenset({
    "status",
    "priority",
    "assigned_to_id",
    "internal_notes",
    "estimated_delivery_date",
    "discount_amount",
    "shipping_cost",
    "tracking_number",
    "carrier",
})

# Le righe sono modificabili (da chiunque) solo in bozza
DRAFT_ONLY_FIELDS = frozenset({"items"})


@dataclass(frozen=True)
class UpdateDecision:
    """Esito della verifica: campi da applicare e campi ignorati."""

    allowed: dict[str, Any]
    ignored: tuple[str, ...] = ()


def ensure_order_access(is_owner: bool, is_staff: bool) -> None:
    """
    Raises:
        AuthorizationError: Cliente non proprietario dell'ordine
    """
    if not (is_owner or is_staff):
        raise AuthorizationError("Accesso non autorizzato a questo ordine")


def resolve_order_update(
    changes: Mapping[str, Any],
    status: OrderStatus,
    *,
    is_owner: bool,
    is_staff: bool,
    strict: bool = False,
) -> UpdateDecision:
    """
    Filtra le modifiche richieste in base a ruolo e stato dell'ordine.

    Args:
        changes: Campi inviati dal chiamante (solo quelli esplicitamente valorizzati)
        status: Stato corrente dell'ordine
        is_owner: Il chiamante è il cliente proprietario
        is_staff: Il chiamante è admin o dipendente
        strict: Rifiuta i campi bloccati invece di ignorarli

    Returns:
        UpdateDecision con i campi ammessi e quelli scartati

    Raises:
        AuthorizationError: Non proprietario, o campi bloccati in modalità strict
    """
    ensure_order_access(is_owner, is_staff)

    editable = set(CLIENT_EDITABLE_FIELDS)
    if is_staff:
        editable |= STAFF_ONLY_FIELDS
    if status != OrderStatus.DRAFT:
        editable -= DRAFT_ONLY_FIELDS
        if not is_staff:
            editable.clear()

    allowed = {key: value for key, value in changes.items() if key in editable}
    ignored = tuple(sorted(key for key in changes if key not in editable))

    if ignored and strict and not is_staff:
        raise AuthorizationError(
            f"Campi non modificabili nello stato '{status.value}': {', '.join(ignored)}",
            extra={"locked_fields": list(ignored), "status": status.value},
        )

    return UpdateDecision(allowed=allowed, ignored=ignored)
