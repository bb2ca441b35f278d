"""
Calcolo prezzi del listino
Progetto: PrintPro (Gestionale Tipografia)

Funzioni pure per il calcolo del prezzo di una riga d'ordine:

    unit_price  = base_price + Σ price_modifier (opzioni selezionate)
    total_price = unit_price × quantity

La quantità viene validata PRIMA di qualsiasi calcolo: fuori dai limiti
[min_quantity, max_quantity] solleva InvalidQuantityError, mai un clamp.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from printpro.core.exceptions import BusinessValidationError, InvalidQuantityError
from printpro.domain.money import ZERO, quantize_money, to_decimal


class OptionType(str, Enum):
    """Tipi di opzione configurabile su un servizio."""
    SELECT = "select"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class PricedOption:
    """
    Opzione a pagamento definita su un servizio del listino.

    Attributes:
        id: Identificativo dell'opzione (chiave nelle opzioni selezionate)
        name: Etichetta leggibile
        type: Tipo di opzione (select, checkbox, number, text)
        price_modifier: Importo aggiunto al prezzo unitario se selezionata
        required: Indica se l'opzione è obbligatoria
        choices: Valori ammessi (solo per select)
    """

    id: str
    name: str
    type: OptionType
    price_modifier: Decimal = ZERO
    required: bool = False
    choices: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PricedOption":
        """Costruisce l'opzione dalla rappresentazione JSON salvata sul servizio."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            type=OptionType(data.get("type", OptionType.CHECKBOX.value)),
            price_modifier=to_decimal(data.get("price_modifier") or 0),
            required=bool(data.get("required", False)),
            choices=tuple(data.get("choices") or ()),
        )


@dataclass(frozen=True)
class PriceQuote:
    """Risultato del calcolo prezzo per una riga."""

    unit_price: Decimal
    total_price: Decimal
    quantity: int
    applied_options: tuple[str, ...] = ()
    ignored_options: tuple[str, ...] = ()


def is_selected(value: Any) -> bool:
    """
    Un'opzione conta come selezionata se il suo valore è "truthy".

    False, None, stringa vuota e 0 significano non selezionata.
    """
    return bool(value)


def validate_quantity(
    quantity: int,
    min_quantity: int,
    max_quantity: int,
    service_name: Optional[str] = None,
) -> None:
    """
    Verifica che la quantità rientri nei limiti del servizio.

    Raises:
        InvalidQuantityError: Se quantity < min_quantity o quantity > max_quantity
    """
    if quantity < min_quantity or quantity > max_quantity:
        label = f" per '{service_name}'" if service_name else ""
        raise InvalidQuantityError(
            f"Quantità {quantity} non valida{label}: "
            f"deve essere compresa tra {min_quantity} e {max_quantity}",
            extra={
                "quantity": quantity,
                "min_quantity": min_quantity,
                "max_quantity": max_quantity,
            },
        )


def _check_strict(
    options_by_id: Mapping[str, PricedOption],
    selected: Mapping[str, Any],
) -> None:
    unknown = sorted(key for key in selected if key not in options_by_id)
    if unknown:
        raise BusinessValidationError(
            f"Opzioni sconosciute: {', '.join(unknown)}",
            extra={"unknown_options": unknown},
        )

    for option in options_by_id.values():
        value = selected.get(option.id)
        if option.required and not is_selected(value):
            raise BusinessValidationError(
                f"L'opzione '{option.name}' è obbligatoria"
            )
        if (
            option.type == OptionType.SELECT
            and is_selected(value)
            and str(value) not in option.choices
        ):
            raise BusinessValidationError(
                f"Valore '{value}' non ammesso per l'opzione '{option.name}'"
            )


def calculate_price(
    base_price: Decimal,
    quantity: int,
    min_quantity: int,
    max_quantity: int,
    options: Iterable[PricedOption],
    selected: Optional[Mapping[str, Any]] = None,
    *,
    strict: bool = False,
    service_name: Optional[str] = None,
) -> PriceQuote:
    """
    Calcola prezzo unitario e totale di una riga.

    Le opzioni selezionate che non esistono sul servizio vengono ignorate
    (e riportate in ignored_options); con strict=True sollevano invece
    BusinessValidationError, così come le opzioni obbligatorie mancanti.

    Args:
        base_price: Prezzo base del servizio
        quantity: Quantità richiesta
        min_quantity: Quantità minima ordinabile
        max_quantity: Quantità massima ordinabile
        options: Opzioni definite sul servizio
        selected: Mappa id opzione -> valore scelto
        strict: Rifiuta opzioni sconosciute invece di ignorarle
        service_name: Nome servizio per i messaggi di errore

    Returns:
        PriceQuote con unit_price e total_price arrotondati al centesimo

    Raises:
        InvalidQuantityError: Quantità fuori dai limiti
        BusinessValidationError: Opzione sconosciuta (solo strict)
    """
    validate_quantity(quantity, min_quantity, max_quantity, service_name)

    selected = selected or {}
    options_by_id = {option.id: option for option in options}

    if strict:
        _check_strict(options_by_id, selected)

    unit_price = to_decimal(base_price)
    applied: list[str] = []
    ignored: list[str] = []

    for option_id, value in selected.items():
        option = options_by_id.get(option_id)
        if option is None:
            ignored.append(option_id)
            continue
        if is_selected(value):
            unit_price += option.price_modifier
            applied.append(option_id)

    unit_price = quantize_money(unit_price)
    return PriceQuote(
        unit_price=unit_price,
        total_price=quantize_money(unit_price * quantity),
        quantity=quantity,
        applied_options=tuple(applied),
        ignored_options=tuple(ignored),
    )


def validate_option_definitions(options: Sequence[Mapping[str, Any]]) -> None:
    """
    Valida le opzioni di un servizio prima del salvataggio.

    Raises:
        BusinessValidationError: id duplicati o select senza valori
    """
    seen: set[str] = set()
    for raw in options:
        option = PricedOption.from_dict(raw)
        if option.id in seen:
            raise BusinessValidationError(f"Opzione duplicata: '{option.id}'")
        seen.add(option.id)
        if option.type == OptionType.SELECT and not option.choices:
            raise BusinessValidationError(
                f"L'opzione select '{option.name}' deve avere almeno un valore"
            )
