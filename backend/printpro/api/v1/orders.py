"""
Router FastAPI per gli Ordini
Progetto: PrintPro (Gestionale Tipografia)

Definisce gli endpoint API per la gestione degli ordini di stampa:
creazione, consultazione, aggiornamento per ruolo, preventivo,
documento fattura e statistiche.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import CurrentUser, StaffUser
from printpro.domain.order_state import OrderPriority, OrderStatus
from printpro.models import Order, User
from printpro.schemas.order import (
    OrderCreate,
    OrderDocumentResponse,
    OrderList,
    OrderRead,
    OrderStats,
    OrderUpdate,
)
from printpro.services.order_service import OrderService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Istanza del service
order_service = OrderService()

router = APIRouter(
    prefix="/orders",
    tags=["Ordini"],
)


def _to_read(order: Order, user: User) -> OrderRead:
    """Serializza l'ordine nascondendo le note interne ai clienti."""
    read = OrderRead.model_validate(order)
    if not user.is_staff:
        read = read.model_copy(update={"internal_notes": None})
    return read


@router.get(
    "/",
    name="ordini_lista",
    summary="Lista ordini",
    description="Lista paginata degli ordini. I clienti vedono solo i propri.",
    response_model=OrderList,
    status_code=status.HTTP_200_OK,
)
async def list_orders(
    current_user: CurrentUser,
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filtro per stato"),
    priority: Optional[OrderPriority] = Query(None, description="Filtro per priorità"),
    search: Optional[str] = Query(None, description="Ricerca su numero ordine e cliente"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente (solo staff)"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> OrderList:
    orders, total = await order_service.get_all(
        db,
        current_user,
        page=page,
        per_page=per_page,
        status=status_filter,
        priority=priority,
        search=search,
        client_id=client_id,
    )
    return OrderList(
        items=[_to_read(o, current_user) for o in orders],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/stats",
    name="ordini_statistiche",
    summary="Statistiche ordini",
    response_model=OrderStats,
)
async def order_stats(
    staff: StaffUser,
    months: int = Query(12, ge=1, le=60, description="Mesi da includere"),
    db: AsyncSession = Depends(get_db),
) -> OrderStats:
    return await order_service.get_stats(db, months=months)


@router.get(
    "/{order_id}",
    name="ordine_dettaglio",
    summary="Dettaglio ordine",
    response_model=OrderRead,
)
async def get_order(
    current_user: CurrentUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> OrderRead:
    order = await order_service.get_for_user(db, order_id, current_user)
    return _to_read(order, current_user)


@router.post(
    "/",
    name="ordine_crea",
    summary="Crea ordine",
    description="Crea un ordine in bozza calcolando prezzi e totali dal listino.",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> OrderRead:
    order = await order_service.create(db, data, current_user)
    await db.commit()
    return _to_read(order, current_user)


@router.put(
    "/{order_id}",
    name="ordine_aggiorna",
    summary="Aggiorna ordine",
    description=(
        "Il cliente modifica righe, note e indirizzi solo in bozza; "
        "lo staff gestisce stato, priorità, assegnazione e costi."
    ),
    response_model=OrderRead,
)
async def update_order(
    data: OrderUpdate,
    current_user: CurrentUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> OrderRead:
    order = await order_service.update(db, order_id, data, current_user)
    await db.commit()
    return _to_read(order, current_user)


@router.delete(
    "/{order_id}",
    name="ordine_elimina",
    summary="Elimina ordine",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_order(
    current_user: CurrentUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await order_service.delete(db, order_id, current_user)
    await db.commit()


@router.post(
    "/{order_id}/quote",
    name="ordine_preventivo",
    summary="Genera preventivo",
    response_model=OrderDocumentResponse,
)
async def generate_quote(
    current_user: CurrentUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> OrderDocumentResponse:
    order = await order_service.generate_quote(db, order_id, current_user)
    await db.commit()
    return OrderDocumentResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        document=order.quote_document,
    )


@router.post(
    "/{order_id}/invoice",
    name="ordine_fattura",
    summary="Genera documento fattura",
    description="Disponibile solo per ordini pronti o consegnati.",
    response_model=OrderDocumentResponse,
)
async def generate_invoice_document(
    current_user: CurrentUser,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine"),
    db: AsyncSession = Depends(get_db),
) -> OrderDocumentResponse:
    order = await order_service.generate_invoice_document(db, order_id, current_user)
    await db.commit()
    return OrderDocumentResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        document=order.invoice_document,
    )


__all__ = ["router"]
