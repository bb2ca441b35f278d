"""
Numerazione progressiva di ordini, pagamenti e documenti
Progetto: PrintPro (Gestionale Tipografia)

Formati:
    Ordine:     PP{YYYYMMDD}{NNNN}          (sequenza giornaliera)
    Pagamento:  PAY-{YYYYMMDD}-{NNNN}       (sequenza giornaliera)
    Documento:  {TYPE}-{YYYYMM}-{NNNN}      (sequenza mensile comune a tutti i tipi)

Le sequenze provengono da un contatore atomico per periodo (vedi
services/sequence_service.py): qui si calcolano solo chiavi e formati.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from printpro.core.exceptions import ConflictError

SEQUENCE_LIMIT = 9999

ORDER_PREFIX = "PP"
PAYMENT_PREFIX = "PAY"


def local_today(timezone_name: str, now: Optional[datetime] = None) -> date:
    """Data corrente nel fuso orario della tipografia."""
    moment = now or datetime.now(ZoneInfo("UTC"))
    return moment.astimezone(ZoneInfo(timezone_name)).date()


def day_window(day: date) -> tuple[date, date]:
    """Intervallo [inizio giorno, inizio giorno successivo)."""
    return day, day + timedelta(days=1)


def month_window(day: date) -> tuple[date, date]:
    """Intervallo [primo del mese, primo del mese successivo)."""
    start = day.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def _check_limit(sequence: int, label: str) -> None:
    if sequence < 1:
        raise ValueError(f"Sequenza non valida: {sequence}")
    if sequence > SEQUENCE_LIMIT:
        raise ConflictError(
            f"Raggiunto il limite di {SEQUENCE_LIMIT} numeri per {label}"
        )


# ------------------------------------------------------------
# Chiavi contatore
# ------------------------------------------------------------
def order_counter_key(day: date) -> str:
    return f"order:{day:%Y%m%d}"


def payment_counter_key(day: date) -> str:
    return f"payment:{day:%Y%m%d}"


def invoice_counter_key(day: date) -> str:
    return f"invoice:{day:%Y%m}"


# ------------------------------------------------------------
# Formati
# ------------------------------------------------------------
def format_order_number(day: date, sequence: int) -> str:
    """
    Es: format_order_number(date(2024, 3, 5), 7) -> 'PP202403050007'

    Raises:
        ConflictError: Oltre 9999 ordini nello stesso giorno
    """
    _check_limit(sequence, "ordini giornalieri")
    return f"{ORDER_PREFIX}{day:%Y%m%d}{sequence:04d}"


def format_payment_number(day: date, sequence: int) -> str:
    """Es: 'PAY-20240305-0001'."""
    _check_limit(sequence, "pagamenti giornalieri")
    return f"{PAYMENT_PREFIX}-{day:%Y%m%d}-{sequence:04d}"


def format_invoice_number(document_type: str, day: date, sequence: int) -> str:
    """Es: format_invoice_number('quote', date(2024, 3, 5), 12) -> 'QUOTE-202403-0012'."""
    _check_limit(sequence, "documenti mensili")
    return f"{document_type.upper()}-{day:%Y%m}-{sequence:04d}"
