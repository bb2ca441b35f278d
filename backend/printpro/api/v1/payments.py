"""
Router FastAPI per i Pagamenti
Progetto: PrintPro (Gestionale Tipografia)

Definisce gli endpoint API per pagamenti, rimborsi, callback MVola,
statistiche e report finanziario.
"""

import logging
import uuid
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import AdminUser, CurrentUser
from printpro.domain.payments import PaymentMethod, PaymentStatus
from printpro.schemas.payment import (
    FinancialReport,
    PaymentCreate,
    PaymentList,
    PaymentRead,
    PaymentStats,
    PaymentStatusUpdate,
    RefundCreate,
)
from printpro.services.mvola_client import MVolaClient, get_mvola_client
from printpro.services.payment_service import payment_service

# Logger per questo modulo
logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/payments",
    tags=["Pagamenti"],
)


@router.get(
    "/",
    name="pagamenti_lista",
    summary="Lista pagamenti",
    response_model=PaymentList,
)
async def list_payments(
    current_user: CurrentUser,
    status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Filtro per stato"),
    method: Optional[PaymentMethod] = Query(None, description="Filtro per metodo"),
    order_id: Optional[uuid.UUID] = Query(None, description="Filtro per ordine"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> PaymentList:
    payments, total = await payment_service.get_all(
        db,
        current_user,
        page=page,
        per_page=per_page,
        status=status_filter,
        method=method,
        order_id=order_id,
    )
    return PaymentList(
        items=[PaymentRead.model_validate(p) for p in payments],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/stats",
    name="pagamenti_statistiche",
    summary="Statistiche pagamenti",
    response_model=PaymentStats,
)
async def payment_stats(
    admin: AdminUser,
    months: int = Query(12, ge=1, le=60, description="Mesi da includere"),
    db: AsyncSession = Depends(get_db),
) -> PaymentStats:
    return await payment_service.get_stats(db, months=months)


@router.get(
    "/report",
    name="pagamenti_report",
    summary="Report finanziario",
    description="Incassi, commissioni, rimborsi e netto nell'intervallo di date.",
    response_model=FinancialReport,
)
async def financial_report(
    admin: AdminUser,
    date_from: date = Query(..., description="Data inizio (YYYY-MM-DD)"),
    date_to: date = Query(..., description="Data fine inclusa (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> FinancialReport:
    return await payment_service.financial_report(db, date_from, date_to)


@router.get(
    "/mvola/balance",
    name="mvola_saldo",
    summary="Saldo merchant MVola",
)
async def mvola_balance(
    admin: AdminUser,
    mvola: MVolaClient = Depends(get_mvola_client),
) -> dict[str, Any]:
    return await mvola.get_balance()


@router.post(
    "/mvola/callback",
    name="mvola_callback",
    summary="Callback MVola",
    description="Notifica del provider. Pubblico: l'autenticità è verificata tramite firma.",
    response_model=PaymentRead,
)
async def mvola_callback(
    payload: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    mvola: MVolaClient = Depends(get_mvola_client),
) -> PaymentRead:
    payment = await payment_service.handle_mvola_callback(db, payload, mvola)
    await db.commit()
    return PaymentRead.model_validate(payment)


@router.get(
    "/{payment_id}",
    name="pagamento_dettaglio",
    summary="Dettaglio pagamento",
    response_model=PaymentRead,
)
async def get_payment(
    current_user: CurrentUser,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    payment = await payment_service.get_for_user(db, payment_id, current_user)
    return PaymentRead.model_validate(payment)


@router.post(
    "/",
    name="pagamento_crea",
    summary="Crea pagamento",
    description="Per MVola la transazione viene avviata immediatamente presso il provider.",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    data: PaymentCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    mvola: MVolaClient = Depends(get_mvola_client),
) -> PaymentRead:
    payment = await payment_service.create(db, data, current_user, mvola)
    await db.commit()
    return PaymentRead.model_validate(payment)


@router.patch(
    "/{payment_id}/status",
    name="pagamento_stato",
    summary="Aggiorna stato pagamento",
    response_model=PaymentRead,
)
async def update_payment_status(
    data: PaymentStatusUpdate,
    admin: AdminUser,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    payment = await payment_service.update_status(db, payment_id, data, admin)
    await db.commit()
    return PaymentRead.model_validate(payment)


@router.post(
    "/{payment_id}/refund",
    name="pagamento_rimborso",
    summary="Rimborsa pagamento",
    description="Rimborso totale (default) o parziale con motivo obbligatorio.",
    response_model=PaymentRead,
)
async def refund_payment(
    data: RefundCreate,
    admin: AdminUser,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
    mvola: MVolaClient = Depends(get_mvola_client),
) -> PaymentRead:
    payment = await payment_service.refund(db, payment_id, data, admin, mvola)
    await db.commit()
    return PaymentRead.model_validate(payment)


@router.post(
    "/{payment_id}/mvola/sync",
    name="pagamento_mvola_sync",
    summary="Verifica stato MVola",
    description="Interroga il provider e allinea lo stato di un pagamento in corso.",
    response_model=PaymentRead,
)
async def sync_mvola_status(
    current_user: CurrentUser,
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
    mvola: MVolaClient = Depends(get_mvola_client),
) -> PaymentRead:
    payment = await payment_service.sync_mvola_status(db, payment_id, current_user, mvola)
    await db.commit()
    return PaymentRead.model_validate(payment)


__all__ = ["router"]
