"""
Router FastAPI per il listino servizi
Progetto: PrintPro (Gestionale Tipografia)

Definisce gli endpoint API per il catalogo dei servizi di stampa
e per il calcolo del prezzo di una configurazione.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import AdminUser, CurrentUser
from printpro.models.service import ServiceCategory
from printpro.schemas.service import (
    CategoryStats,
    PriceCalculationRequest,
    PriceCalculationResponse,
    ServiceCreate,
    ServiceList,
    ServiceRead,
    ServiceUpdate,
)
from printpro.services.service_catalog_service import ServiceCatalogService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Istanza del service
catalog_service = ServiceCatalogService()

router = APIRouter(
    prefix="/services",
    tags=["Listino"],
)


@router.get(
    "/",
    name="servizi_lista",
    summary="Lista servizi",
    description="Lista paginata del listino. I servizi disattivati sono visibili solo allo staff.",
    response_model=ServiceList,
    status_code=status.HTTP_200_OK,
)
async def list_services(
    current_user: CurrentUser,
    category: Optional[ServiceCategory] = Query(None, description="Filtro per categoria"),
    search: Optional[str] = Query(None, description="Ricerca su nome e descrizione"),
    include_inactive: bool = Query(False, description="Include i servizi disattivati (solo staff)"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> ServiceList:
    services, total = await catalog_service.get_all(
        db,
        page=page,
        per_page=per_page,
        category=category,
        search=search,
        include_inactive=include_inactive and current_user.is_staff,
    )
    return ServiceList(
        items=[ServiceRead.model_validate(s) for s in services],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/stats",
    name="servizi_statistiche",
    summary="Statistiche per categoria",
    response_model=list[CategoryStats],
)
async def category_stats(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> list[CategoryStats]:
    return await catalog_service.category_stats(db)


@router.get(
    "/{service_id}",
    name="servizio_dettaglio",
    summary="Dettaglio servizio",
    response_model=ServiceRead,
)
async def get_service(
    current_user: CurrentUser,
    service_id: uuid.UUID = Path(..., description="UUID del servizio"),
    db: AsyncSession = Depends(get_db),
) -> ServiceRead:
    service = await catalog_service.get_by_id(db, service_id, include_inactive=current_user.is_staff)
    return ServiceRead.model_validate(service)


@router.post(
    "/",
    name="servizio_crea",
    summary="Crea servizio",
    response_model=ServiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    data: ServiceCreate,
    admin: AdminUser,
    db: AsyncSession = Depends(get_db),
) -> ServiceRead:
    service = await catalog_service.create(db, data)
    await db.commit()
    return ServiceRead.model_validate(service)


@router.put(
    "/{service_id}",
    name="servizio_aggiorna",
    summary="Aggiorna servizio",
    response_model=ServiceRead,
)
async def update_service(
    data: ServiceUpdate,
    admin: AdminUser,
    service_id: uuid.UUID = Path(..., description="UUID del servizio"),
    db: AsyncSession = Depends(get_db),
) -> ServiceRead:
    service = await catalog_service.update(db, service_id, data)
    await db.commit()
    return ServiceRead.model_validate(service)


@router.delete(
    "/{service_id}",
    name="servizio_disattiva",
    summary="Disattiva servizio",
    description="Disattivazione logica: il servizio non viene mai eliminato.",
    response_model=ServiceRead,
)
async def deactivate_service(
    admin: AdminUser,
    service_id: uuid.UUID = Path(..., description="UUID del servizio"),
    db: AsyncSession = Depends(get_db),
) -> ServiceRead:
    service = await catalog_service.deactivate(db, service_id)
    await db.commit()
    return ServiceRead.model_validate(service)


@router.post(
    "/{service_id}/calculate-price",
    name="servizio_calcola_prezzo",
    summary="Calcola prezzo",
    description="Calcola prezzo unitario e totale di una configurazione senza creare un ordine.",
    response_model=PriceCalculationResponse,
)
async def calculate_price(
    data: PriceCalculationRequest,
    current_user: CurrentUser,
    service_id: uuid.UUID = Path(..., description="UUID del servizio"),
    db: AsyncSession = Depends(get_db),
) -> PriceCalculationResponse:
    quote = await catalog_service.calculate_price(db, service_id, data.quantity, data.options)
    return PriceCalculationResponse(
        service_id=service_id,
        quantity=quote.quantity,
        unit_price=quote.unit_price,
        total_price=quote.total_price,
        applied_options=list(quote.applied_options),
        ignored_options=list(quote.ignored_options),
    )


__all__ = ["router"]
