"""
Router FastAPI per la Fatturazione
Progetto: PrintPro (Gestionale Tipografia)

Definisce gli endpoint API per fatture, preventivi, note di credito
e proforma: generazione, consultazione, invio, incasso e download PDF.
"""

import logging
import os
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import CurrentUser, StaffUser
from printpro.core.exceptions import NotFoundError
from printpro.models.invoice import InvoiceStatus, InvoiceType
from printpro.schemas.invoice import (
    InvoiceCreate,
    InvoiceFromOrder,
    InvoiceList,
    InvoiceMarkPaid,
    InvoiceRead,
    InvoiceStats,
    InvoiceUpdate,
)
from printpro.services.invoice_service import invoice_service

# Logger per questo modulo
logger = logging.getLogger(__name__)


# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Fatturazione"],
)


# -------------------------------------------------------------------
# Consultazione
# -------------------------------------------------------------------

@router.get(
    "/",
    name="fatture_lista",
    summary="Lista documenti",
    description="Recupera la lista paginata dei documenti con eventuali filtri.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    current_user: CurrentUser,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Filtro per stato"),
    invoice_type: Optional[InvoiceType] = Query(None, description="Filtro per tipo"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente (solo staff)"),
    from_date: Optional[date] = Query(None, description="Data inizio periodo (formato: YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Data fine periodo (formato: YYYY-MM-DD)"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    """
    Filtri disponibili:
    - status: draft, sent, paid, overdue, cancelled
    - invoice_type: invoice, quote, credit_note, proforma
    - from_date/to_date: intervallo sulla data di emissione
    """
    invoices, total = await invoice_service.get_all(
        db,
        current_user,
        page=page,
        per_page=per_page,
        status=status_filter,
        invoice_type=invoice_type,
        client_id=client_id,
        from_date=from_date,
        to_date=to_date,
    )
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/overdue",
    name="fatture_scadute",
    summary="Fatture scadute",
    description="Fatture con scadenza passata non ancora pagate.",
    response_model=list[InvoiceRead],
)
async def get_overdue_invoices(
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
) -> list[InvoiceRead]:
    invoices = await invoice_service.get_overdue(db)
    await db.commit()
    return [InvoiceRead.model_validate(i) for i in invoices]


@router.get(
    "/stats",
    name="fatture_statistiche",
    summary="Statistiche fatturazione",
    response_model=InvoiceStats,
)
async def invoice_stats(
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
) -> InvoiceStats:
    return await invoice_service.get_stats(db)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio documento",
    response_model=InvoiceRead,
)
async def get_invoice(
    current_user: CurrentUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.get_for_user(db, invoice_id, current_user)
    return InvoiceRead.model_validate(invoice)


@router.get(
    "/{invoice_id}/pdf",
    name="fattura_pdf",
    summary="Scarica PDF",
    response_class=FileResponse,
)
async def download_invoice_pdf(
    current_user: CurrentUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    """Se il PDF non è disponibile viene rigenerato."""
    invoice = await invoice_service.get_for_user(db, invoice_id, current_user)
    if not invoice.pdf_path or not os.path.exists(invoice.pdf_path):
        invoice.pdf_path = await invoice_service.render_pdf(invoice)
        await db.commit()
    if not invoice.pdf_path:
        raise NotFoundError("PDF non disponibile per questo documento")
    return FileResponse(
        invoice.pdf_path,
        media_type="application/pdf",
        filename=f"{invoice.invoice_number}.pdf",
    )


# -------------------------------------------------------------------
# Creazione e modifiche
# -------------------------------------------------------------------

@router.post(
    "/from-order/{order_id}",
    name="crea_fattura_da_ordine",
    summary="Crea documento da ordine",
    description="Fatture e note di credito richiedono un ordine pronto o consegnato.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice_from_order(
    data: InvoiceFromOrder,
    staff: StaffUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.create_from_order(db, order_id, data, staff)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/",
    name="crea_fattura",
    summary="Crea documento manuale",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.create(db, data, staff)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.put(
    "/{invoice_id}",
    name="aggiorna_fattura",
    summary="Aggiorna documento",
    description="Scadenza, note, condizioni e indirizzo. Gli importi non sono modificabili.",
    response_model=InvoiceRead,
)
async def update_invoice(
    data: InvoiceUpdate,
    staff: StaffUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.update(db, invoice_id, data)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/send",
    name="invia_fattura",
    summary="Segna come inviato",
    response_model=InvoiceRead,
)
async def mark_invoice_sent(
    staff: StaffUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.mark_sent(db, invoice_id)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/mark-paid",
    name="fattura_pagata",
    summary="Segna come pagato",
    response_model=InvoiceRead,
)
async def mark_invoice_paid(
    data: InvoiceMarkPaid,
    staff: StaffUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.mark_paid(db, invoice_id, data)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/cancel",
    name="annulla_fattura",
    summary="Annulla documento",
    response_model=InvoiceRead,
)
async def cancel_invoice(
    staff: StaffUser,
    invoice_id: uuid.UUID = Path(..., description="UUID del documento"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.cancel(db, invoice_id)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


__all__ = ["router"]
