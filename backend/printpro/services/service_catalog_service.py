"""
Service Layer per il listino servizi
Progetto: PrintPro (Gestionale Tipografia)

CRUD del listino con disattivazione logica, statistiche per categoria
e calcolo del prezzo di una configurazione.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.core.exceptions import BusinessValidationError, NotFoundError
from printpro.domain.money import quantize_money
from printpro.domain.pricing import PriceQuote, calculate_price, validate_option_definitions
from printpro.models import Service
from printpro.models.service import ServiceCategory
from printpro.schemas.service import CategoryStats, ServiceCreate, ServiceUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ServiceCatalogService:
    """
    Service per la gestione del listino.

    I servizi non vengono mai eliminati: la disattivazione imposta
    is_active=False e li nasconde ai clienti.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        category: Optional[ServiceCategory] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Service], int]:
        """
        Lista paginata del listino.

        Args:
            db: Sessione database
            page: Numero pagina
            per_page: Elementi per pagina
            category: Filtro per categoria
            search: Ricerca su nome e descrizione
            include_inactive: Include i servizi disattivati (solo staff)

        Returns:
            Tuple di (lista servizi, totale count)
        """
        conditions = []
        if not include_inactive:
            conditions.append(Service.is_active == True)  # noqa: E712
        if category is not None:
            conditions.append(Service.category == category.value)
        if search:
            term = f"%{search}%"
            conditions.append(or_(Service.name.ilike(term), Service.description.ilike(term)))

        query = select(Service).order_by(Service.category.asc(), Service.name.asc())
        count_query = select(func.count()).select_from(Service)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        services = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s servizi su %s (pagina %s)", len(services), total, page)
        return services, total

    async def get_by_id(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> Service:
        """
        Raises:
            NotFoundError: Servizio inesistente o disattivato
        """
        query = select(Service).where(Service.id == service_id)
        if not include_inactive:
            query = query.where(Service.is_active == True)  # noqa: E712

        result = await db.execute(query)
        service = result.scalar_one_or_none()
        if service is None:
            logger.warning("Servizio non trovato o disattivato: %s", service_id)
            raise NotFoundError(f"Servizio con ID {service_id} non trovato")
        return service

    async def create(self, db: AsyncSession, data: ServiceCreate) -> Service:
        """Crea un nuovo servizio del listino."""
        payload = data.model_dump(mode="json")
        service = Service(
            name=data.name,
            description=data.description,
            category=data.category.value,
            base_price=data.base_price,
            unit=data.unit.value,
            min_quantity=data.min_quantity,
            max_quantity=data.max_quantity,
            options=payload["options"],
            images=data.images,
            tags=data.tags,
            estimated_delivery_days=data.estimated_delivery_days,
        )
        db.add(service)
        await db.flush()
        await db.refresh(service)

        logger.info("Creato servizio %s (%s)", service.name, service.id)
        return service

    async def update(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        data: ServiceUpdate,
    ) -> Service:
        """
        Aggiorna un servizio.

        Raises:
            NotFoundError: Servizio inesistente
            BusinessValidationError: min_quantity > max_quantity sui valori risultanti
        """
        service = await self.get_by_id(db, service_id, include_inactive=True)
        changes = data.model_dump(exclude_unset=True, mode="json")

        min_quantity = changes.get("min_quantity", service.min_quantity)
        max_quantity = changes.get("max_quantity", service.max_quantity)
        if min_quantity > max_quantity:
            raise BusinessValidationError(
                f"min_quantity ({min_quantity}) non può superare max_quantity ({max_quantity})"
            )
        if "options" in changes:
            validate_option_definitions(changes["options"])
        if "base_price" in changes:
            changes["base_price"] = data.base_price

        for field, value in changes.items():
            setattr(service, field, value)

        await db.flush()
        await db.refresh(service)

        logger.info("Aggiornato servizio %s: %s", service.id, ", ".join(changes))
        return service

    async def deactivate(self, db: AsyncSession, service_id: uuid.UUID) -> Service:
        """Disattivazione logica (gli ordini storici continuano a referenziarlo)."""
        service = await self.get_by_id(db, service_id, include_inactive=True)
        service.is_active = False
        await db.flush()
        logger.info("Disattivato servizio %s", service.id)
        return service

    async def calculate_price(
        self,
        db: AsyncSession,
        service_id: uuid.UUID,
        quantity: int,
        options: dict[str, Any],
    ) -> PriceQuote:
        """
        Calcola il prezzo di una configurazione senza creare un ordine.

        Raises:
            NotFoundError: Servizio inesistente o disattivato
            InvalidQuantityError: Quantità fuori dai limiti
        """
        service = await self.get_by_id(db, service_id)
        return price_service(service, quantity, options)

    async def category_stats(self, db: AsyncSession) -> list[CategoryStats]:
        """Numero di servizi attivi e prezzi medi/min/max per categoria."""
        result = await db.execute(
            select(
                Service.category,
                func.count(Service.id),
                func.avg(Service.base_price),
                func.min(Service.base_price),
                func.max(Service.base_price),
            )
            .where(Service.is_active == True)  # noqa: E712
            .group_by(Service.category)
            .order_by(Service.category)
        )
        return [
            CategoryStats(
                category=category,
                count=count,
                avg_price=quantize_money(avg_price or Decimal("0")),
                min_price=quantize_money(min_price or Decimal("0")),
                max_price=quantize_money(max_price or Decimal("0")),
            )
            for category, count, avg_price, min_price, max_price in result.all()
        ]


def price_service(service: Service, quantity: int, options: dict[str, Any]) -> PriceQuote:
    """Applica il calcolo prezzi del dominio a un servizio del listino."""
    quote = calculate_price(
        base_price=service.base_price,
        quantity=quantity,
        min_quantity=service.min_quantity,
        max_quantity=service.max_quantity,
        options=service.priced_options,
        selected=options,
        strict=settings.strict_order_options,
        service_name=service.name,
    )
    if quote.ignored_options:
        logger.info(
            "Opzioni ignorate per il servizio %s: %s",
            service.id, ", ".join(quote.ignored_options),
        )
    return quote


__all__ = ["ServiceCatalogService", "price_service"]
