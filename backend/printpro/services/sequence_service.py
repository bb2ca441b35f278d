"""
Service per la numerazione progressiva
Progetto: PrintPro (Gestionale Tipografia)

Genera numeri d'ordine, di pagamento e di documento a partire da un
contatore atomico per periodo (tabella sequence_counters).

L'incremento è un'unica istruzione UPDATE ... RETURNING; alla prima
richiesta del periodo la riga viene creata con INSERT ... ON CONFLICT DO
UPDATE, inizializzata con il numero di record già presenti nel periodo
(dati importati prima dell'introduzione dei contatori).
"""

import logging
from datetime import date, datetime, time
from typing import Any, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.domain import numbering
from printpro.models import Invoice, Order, Payment, SequenceCounter

# Logger per questo modulo
logger = logging.getLogger(__name__)


class SequenceService:
    """Contatori atomici e formattazione dei numeri progressivi."""

    async def next_value(
        self,
        db: AsyncSession,
        key: str,
        seed_query: Optional[Any] = None,
    ) -> int:
        """
        Incrementa e restituisce il contatore per la chiave.

        Args:
            db: Sessione database
            key: Chiave del contatore (es. 'order:20240305')
            seed_query: SELECT count(...) usata per inizializzare un contatore nuovo

        Returns:
            Nuovo valore del contatore (1 per il primo numero del periodo)
        """
        result = await db.execute(
            update(SequenceCounter)
            .where(SequenceCounter.key == key)
            .values(value=SequenceCounter.value + 1)
            .returning(SequenceCounter.value)
        )
        value = result.scalar_one_or_none()
        if value is not None:
            return value

        seed = 0
        if seed_query is not None:
            seed = (await db.execute(seed_query)).scalar() or 0

        stmt = pg_insert(SequenceCounter).values(key=key, value=seed + 1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[SequenceCounter.key],
            set_={"value": SequenceCounter.value + 1},
        ).returning(SequenceCounter.value)
        value = (await db.execute(stmt)).scalar_one()

        logger.info("Creato contatore %s (valore iniziale %s)", key, value)
        return value

    # ------------------------------------------------------------
    # Numeri di business
    # ------------------------------------------------------------
    def _bounds(self, start: date, end: date) -> tuple[datetime, datetime]:
        tz = ZoneInfo(settings.timezone)
        return (
            datetime.combine(start, time.min, tzinfo=tz),
            datetime.combine(end, time.min, tzinfo=tz),
        )

    def _count_in_window(self, model: Any, start: date, end: date, *conditions: Any) -> Any:
        lower, upper = self._bounds(start, end)
        return select(func.count(model.id)).where(
            model.created_at >= lower,
            model.created_at < upper,
            *conditions,
        )

    async def next_order_number(self, db: AsyncSession, now: Optional[datetime] = None) -> str:
        """Numero ordine PP{YYYYMMDD}{NNNN}."""
        day = numbering.local_today(settings.timezone, now)
        value = await self.next_value(
            db,
            numbering.order_counter_key(day),
            self._count_in_window(Order, *numbering.day_window(day)),
        )
        return numbering.format_order_number(day, value)

    async def next_payment_number(self, db: AsyncSession, now: Optional[datetime] = None) -> str:
        """Numero pagamento PAY-{YYYYMMDD}-{NNNN}."""
        day = numbering.local_today(settings.timezone, now)
        value = await self.next_value(
            db,
            numbering.payment_counter_key(day),
            self._count_in_window(Payment, *numbering.day_window(day)),
        )
        return numbering.format_payment_number(day, value)

    async def next_invoice_number(
        self,
        db: AsyncSession,
        document_type: str,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Numero documento {TYPE}-{YYYYMM}-{NNNN}.

        La sequenza mensile è unica per tutti i tipi: a INVOICE-202403-0001
        può seguire QUOTE-202403-0002.
        """
        day = numbering.local_today(settings.timezone, now)
        value = await self.next_value(
            db,
            numbering.invoice_counter_key(day),
            self._count_in_window(Invoice, *numbering.month_window(day)),
        )
        return numbering.format_invoice_number(document_type, day, value)


sequence_service = SequenceService()

__all__ = ["SequenceService", "sequence_service"]
