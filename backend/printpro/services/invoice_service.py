"""
Service Layer per la Fatturazione
Progetto: PrintPro (Gestionale Tipografia)

Definisce la logica di business per i documenti contabili (fatture,
preventivi, note di credito, proforma): generazione da ordine o manuale,
numerazione mensile condivisa tra i tipi, rendering PDF, incassi e scadenze.
"""

import asyncio
import logging
import os
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    InvalidStateError,
    NotFoundError,
)
from printpro.domain.invoicing import (
    DEFAULT_PAYMENT_TERMS,
    compute_invoice_totals,
    line_description,
)
from printpro.domain.money import ZERO, quantize_money
from printpro.domain.order_state import INVOICEABLE_STATUSES, OrderStatus
from printpro.domain.snapshots import ClientSnapshot, to_json
from printpro.models import Invoice, InvoiceLine, Order, User
from printpro.models.invoice import InvoiceStatus, InvoiceType
from printpro.schemas.invoice import (
    DiscountSpec,
    InvoiceCreate,
    InvoiceFromOrder,
    InvoiceMarkPaid,
    InvoiceStats,
    InvoiceStatusCount,
    InvoiceUpdate,
)
from printpro.services.pdf_service import PdfService, pdf_service
from printpro.services.sequence_service import SequenceService, sequence_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Tipi che richiedono un ordine pronto o consegnato
_BILLING_TYPES = {InvoiceType.INVOICE.value, InvoiceType.CREDIT_NOTE.value}

_OPEN_STATUSES = (
    InvoiceStatus.DRAFT.value,
    InvoiceStatus.SENT.value,
    InvoiceStatus.OVERDUE.value,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceService:
    """
    Service per la gestione dei documenti contabili.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.

    Implementa:
    - Generazione documento da ordine
    - Creazione manuale (staff)
    - Sconti percentuali e fissi, IVA sull'imponibile scontato
    - Numerazione progressiva mensile condivisa tra i tipi
    - Rendering PDF (gli errori non bloccano la creazione)
    """

    def __init__(
        self,
        sequences: Optional[SequenceService] = None,
        pdf: Optional[PdfService] = None,
    ) -> None:
        self.sequences = sequences or sequence_service
        self.pdf = pdf or pdf_service

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def create_from_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: InvoiceFromOrder,
        user: User,
    ) -> Invoice:
        """
        Genera un documento a partire da un ordine.

        Steps:
        1. Verifica che l'ordine esista e non sia annullato
        2. Fatture e note di credito: ordine 'ready' o 'delivered'
        3. Una riga per articolo: "{servizio} - {quantità} {unità}"
        4. Sconti, IVA e totali
        5. Numero {TYPE}-{YYYYMM}-{NNNN}
        6. PDF (un errore di rendering lascia pdf_path vuoto)

        Raises:
            NotFoundError: Ordine inesistente
            InvalidStateError: Stato ordine non fatturabile
        """
        result = await db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Ordine con ID {order_id} non trovato")

        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidStateError("Impossibile emettere documenti per un ordine annullato")
        if (
            data.invoice_type.value in _BILLING_TYPES
            and OrderStatus(order.status) not in INVOICEABLE_STATUSES
        ):
            raise InvalidStateError(
                "L'ordine deve essere pronto o consegnato per essere fatturato",
                extra={"status": order.status},
            )

        lines = []
        for position, item in enumerate(order.items, start=1):
            snapshot = item.service_snapshot or {}
            lines.append(InvoiceLine(
                line_number=position,
                description=line_description(
                    snapshot.get("name", ""), item.quantity, snapshot.get("unit", ""),
                ),
                quantity=Decimal(item.quantity),
                unit_price=item.unit_price,
                tax_rate=settings.tax_rate,
                service_id=item.service_id,
            ))
        if order.shipping_cost and order.shipping_cost > ZERO:
            lines.append(InvoiceLine(
                line_number=len(lines) + 1,
                description="Frais de livraison",
                quantity=Decimal("1"),
                unit_price=order.shipping_cost,
                tax_rate=settings.tax_rate,
            ))

        invoice = await self._build(
            db,
            invoice_type=data.invoice_type,
            client_snapshot=order.client_snapshot,
            client_id=order.client_id,
            billing_address=order.billing_address,
            lines=lines,
            discounts=data.discounts,
            due_date=data.due_date,
            notes=data.notes,
            terms=data.terms,
            user=user,
        )
        invoice.order_id = order.id
        invoice.payment_method = order.payment_method

        return await self._finalize(db, invoice)

    async def create(self, db: AsyncSession, data: InvoiceCreate, user: User) -> Invoice:
        """
        Creazione manuale di un documento (staff).

        Raises:
            NotFoundError: Cliente inesistente
        """
        result = await db.execute(select(User).where(User.id == data.client_id))
        client = result.scalar_one_or_none()
        if client is None:
            raise NotFoundError(f"Cliente con ID {data.client_id} non trovato")

        lines = [
            InvoiceLine(
                line_number=position,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                tax_rate=settings.tax_rate,
                service_id=line.service_id,
            )
            for position, line in enumerate(data.lines, start=1)
        ]

        invoice = await self._build(
            db,
            invoice_type=data.invoice_type,
            client_snapshot=to_json(ClientSnapshot.from_user(client)),
            client_id=client.id,
            billing_address=to_json(data.billing_address),
            lines=lines,
            discounts=data.discounts,
            due_date=data.due_date,
            notes=data.notes,
            terms=data.terms,
            user=user,
        )
        return await self._finalize(db, invoice)

    async def _build(
        self,
        db: AsyncSession,
        *,
        invoice_type: InvoiceType,
        client_snapshot: dict[str, Any],
        client_id: uuid.UUID,
        billing_address: Optional[dict[str, Any]],
        lines: list[InvoiceLine],
        discounts: Iterable[DiscountSpec],
        due_date: Optional[date],
        notes: Optional[str],
        terms: Optional[str],
        user: User,
    ) -> Invoice:
        totals = compute_invoice_totals(
            (line.quantity * line.unit_price for line in lines),
            [d.model_dump() for d in discounts],
            settings.tax_rate,
        )
        issue_date = date.today()
        if due_date is not None and due_date < issue_date:
            raise BusinessValidationError("La data di scadenza non può precedere la data di emissione")

        return Invoice(
            invoice_number=await self.sequences.next_invoice_number(db, invoice_type.value),
            invoice_type=invoice_type.value,
            status=InvoiceStatus.DRAFT.value,
            client_id=client_id,
            client_snapshot=client_snapshot,
            billing_address=billing_address,
            issue_date=issue_date,
            due_date=due_date or issue_date + timedelta(days=settings.invoice_due_days),
            subtotal=totals.subtotal,
            discount_total=totals.discount_total,
            tax_rate=settings.tax_rate,
            tax_total=totals.tax_total,
            total=totals.total,
            currency=settings.currency,
            discounts=list(totals.discounts),
            notes=notes,
            terms=terms or DEFAULT_PAYMENT_TERMS,
            created_by_id=user.id,
            lines=lines,
        )

    async def _finalize(self, db: AsyncSession, invoice: Invoice) -> Invoice:
        db.add(invoice)
        await db.flush()
        await db.refresh(invoice)

        invoice.pdf_path = await self.render_pdf(invoice)
        await db.flush()

        logger.info(
            "Creato documento %s (%s) per %s: totale %s",
            invoice.invoice_number, invoice.invoice_type, invoice.client_id, invoice.total,
        )
        return invoice

    # ------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------
    def pdf_file_path(self, invoice: Invoice) -> str:
        return os.path.join(settings.upload_path, "invoices", f"{invoice.invoice_number}.pdf")

    async def render_pdf(self, invoice: Invoice) -> Optional[str]:
        """
        Scrive il PDF del documento.

        Returns:
            Percorso del file, None se il rendering fallisce
        """
        path = self.pdf_file_path(invoice)
        try:
            html = self.pdf.render_invoice_html(invoice)
            content = await asyncio.to_thread(self.pdf.html_to_pdf, html)
            await asyncio.to_thread(_write_file, path, content)
        except Exception:
            logger.exception("Errore nella generazione del PDF per %s", invoice.invoice_number)
            return None
        return path

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------
    async def get_by_id(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Raises:
            NotFoundError: Documento non trovato
        """
        result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")
        return invoice

    async def get_for_user(self, db: AsyncSession, invoice_id: uuid.UUID, user: User) -> Invoice:
        """
        Raises:
            AuthorizationError: Cliente diverso dall'intestatario
        """
        invoice = await self.get_by_id(db, invoice_id)
        if not user.is_staff and invoice.client_id != user.id:
            raise AuthorizationError("Accesso non autorizzato a questo documento")
        return invoice

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        per_page: int = 20,
        status: Optional[InvoiceStatus] = None,
        invoice_type: Optional[InvoiceType] = None,
        client_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> tuple[list[Invoice], int]:
        """
        Lista paginata dei documenti.

        Args:
            db: Sessione database
            user: Utente corrente (i clienti vedono solo i propri)
            status: Filtro per stato
            invoice_type: Filtro per tipo
            client_id: Filtro per cliente (solo staff)
            from_date / to_date: Intervallo sulla data di emissione

        Returns:
            Tuple di (lista documenti, totale count)
        """
        conditions = []
        if not user.is_staff:
            conditions.append(Invoice.client_id == user.id)
        elif client_id is not None:
            conditions.append(Invoice.client_id == client_id)
        if status is not None:
            conditions.append(Invoice.status == status.value)
        if invoice_type is not None:
            conditions.append(Invoice.invoice_type == invoice_type.value)
        if from_date:
            conditions.append(Invoice.issue_date >= from_date)
        if to_date:
            conditions.append(Invoice.issue_date <= to_date)

        query = select(Invoice).order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
        count_query = select(func.count(Invoice.id))
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        invoices = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return invoices, total

    async def get_overdue(self, db: AsyncSession) -> list[Invoice]:
        """
        Documenti scaduti e non pagati.

        Le fatture inviate ancora aperte vengono portate in stato 'overdue'.
        """
        today = date.today()
        result = await db.execute(
            select(Invoice)
            .where(
                Invoice.status.in_(_OPEN_STATUSES),
                Invoice.invoice_type == InvoiceType.INVOICE.value,
                Invoice.due_date < today,
            )
            .order_by(Invoice.due_date.asc())
        )
        invoices = list(result.scalars().all())

        for invoice in invoices:
            if invoice.status == InvoiceStatus.SENT.value:
                invoice.status = InvoiceStatus.OVERDUE.value
        await db.flush()

        logger.debug("Trovati %s documenti scaduti", len(invoices))
        return invoices

    # ------------------------------------------------------------
    # Modifiche di stato
    # ------------------------------------------------------------
    async def update(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: InvoiceUpdate,
    ) -> Invoice:
        """
        Modifica scadenza, note, condizioni o indirizzo.

        Raises:
            InvalidStateError: Documento pagato o annullato
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise InvalidStateError(f"Impossibile modificare un documento in stato {invoice.status}")

        changes = data.model_dump(exclude_unset=True)
        if "due_date" in changes and changes["due_date"] is not None:
            if changes["due_date"] < invoice.issue_date:
                raise BusinessValidationError("La data di scadenza non può precedere la data di emissione")
        if "billing_address" in changes:
            changes["billing_address"] = to_json(data.billing_address)

        for field, value in changes.items():
            setattr(invoice, field, value)

        await db.flush()
        invoice.pdf_path = await self.render_pdf(invoice)
        await db.flush()
        await db.refresh(invoice)
        return invoice

    async def mark_sent(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Raises:
            InvalidStateError: Documento non in bozza
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.status not in (InvoiceStatus.DRAFT.value, InvoiceStatus.SENT.value):
            raise InvalidStateError(f"Impossibile inviare un documento in stato {invoice.status}")

        invoice.status = InvoiceStatus.SENT.value
        invoice.sent_at = invoice.sent_at or _utcnow()
        await db.flush()
        await db.refresh(invoice)

        logger.info("Documento %s segnato come inviato", invoice.invoice_number)
        return invoice

    async def mark_paid(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: InvoiceMarkPaid,
    ) -> Invoice:
        """
        Raises:
            InvalidStateError: Documento annullato o già pagato
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise InvalidStateError("Il documento risulta già pagato")
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvalidStateError("Impossibile registrare il pagamento di un documento annullato")

        invoice.status = InvoiceStatus.PAID.value
        invoice.paid_at = data.paid_at or _utcnow()
        if data.payment_method is not None:
            invoice.payment_method = data.payment_method.value

        await db.flush()
        await db.refresh(invoice)
        logger.info("Documento %s segnato come pagato", invoice.invoice_number)
        return invoice

    async def cancel(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Raises:
            InvalidStateError: Documento già pagato
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise InvalidStateError("Un documento pagato non può essere annullato")

        invoice.status = InvoiceStatus.CANCELLED.value
        await db.flush()
        await db.refresh(invoice)
        logger.info("Documento %s annullato", invoice.invoice_number)
        return invoice

    # ------------------------------------------------------------
    # Statistiche
    # ------------------------------------------------------------
    async def get_stats(self, db: AsyncSession) -> InvoiceStats:
        """Importi per stato, incassato, in sospeso e scaduto (solo fatture)."""
        is_invoice = Invoice.invoice_type == InvoiceType.INVOICE.value
        rows = (await db.execute(
            select(Invoice.status, func.count(Invoice.id), func.coalesce(func.sum(Invoice.total), 0))
            .where(is_invoice)
            .group_by(Invoice.status)
            .order_by(Invoice.status)
        )).all()
        by_status = [
            InvoiceStatusCount(status=status, count=count, amount=quantize_money(amount))
            for status, count, amount in rows
        ]

        overdue = (await db.execute(
            select(func.coalesce(func.sum(Invoice.total), 0)).where(
                is_invoice,
                Invoice.status.in_(_OPEN_STATUSES),
                Invoice.due_date < date.today(),
            )
        )).scalar()

        amounts = {s.status: s.amount for s in by_status}
        outstanding = sum((amounts.get(s, ZERO) for s in _OPEN_STATUSES), ZERO)
        return InvoiceStats(
            total_invoices=sum(s.count for s in by_status),
            total_amount=sum((s.amount for s in by_status), ZERO),
            paid_amount=amounts.get(InvoiceStatus.PAID.value, ZERO),
            outstanding_amount=outstanding,
            overdue_amount=quantize_money(overdue or ZERO),
            by_status=by_status,
        )


def _write_file(path: str, content: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


invoice_service = InvoiceService()

__all__ = ["InvoiceService", "invoice_service"]
