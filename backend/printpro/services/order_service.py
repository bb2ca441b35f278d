"""
Service Layer per gli Ordini
Progetto: PrintPro (Gestionale Tipografia)

Definisce la logica applicativa degli ordini:
- Creazione con calcolo prezzi, snapshot e numerazione atomica
- Modifica filtrata per ruolo e stato (domain/permissions.py)
- Transizioni di stato con timestamp (domain/order_state.py)
- Generazione riferimenti preventivo / fattura
- Statistiche

Le regole di calcolo e di transizione sono funzioni pure del package
domain; qui si caricano e si salvano i dati.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.core.exceptions import AuthorizationError, InvalidStateError, NotFoundError
from printpro.domain.money import ZERO, quantize_money
from printpro.domain.order_state import (
    INVOICEABLE_STATUSES,
    OrderPaymentStatus,
    OrderPriority,
    OrderStatus,
    apply_status,
    apply_totals,
    compute_totals,
)
from printpro.domain.permissions import ensure_order_access, resolve_order_update
from printpro.domain.snapshots import ClientSnapshot, ServiceSnapshot, to_json
from printpro.models import Order, OrderItem, Service, User
from printpro.models.user import UserRole
from printpro.schemas.common import PeriodCount
from printpro.schemas.order import OrderCreate, OrderItemCreate, OrderStats, OrderUpdate
from printpro.services.sequence_service import SequenceService, sequence_service
from printpro.services.service_catalog_service import price_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Campi non annullabili: un null esplicito nel payload viene ignorato
_NON_NULLABLE_FIELDS = frozenset({
    "items",
    "billing_address",
    "status",
    "priority",
    "discount_amount",
    "shipping_cost",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Service per la gestione degli ordini.

    Ogni metodo riceve la sessione database esplicitamente; commit e
    rollback restano in carico al router.
    """

    def __init__(self, sequences: Optional[SequenceService] = None) -> None:
        self.sequences = sequences or sequence_service

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------
    async def get_by_id(self, db: AsyncSession, order_id: uuid.UUID) -> Order:
        """
        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        result = await db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            logger.warning("Ordine non trovato: %s", order_id)
            raise NotFoundError(f"Ordine con ID {order_id} non trovato")
        return order

    async def get_for_user(self, db: AsyncSession, order_id: uuid.UUID, user: User) -> Order:
        """
        Ordine visibile all'utente: il cliente vede solo i propri.

        Raises:
            NotFoundError: Se l'ordine non esiste
            AuthorizationError: Cliente non proprietario
        """
        order = await self.get_by_id(db, order_id)
        ensure_order_access(order.client_id == user.id, user.is_staff)
        return order

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        per_page: int = 20,
        status: Optional[OrderStatus] = None,
        priority: Optional[OrderPriority] = None,
        search: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Order], int]:
        """
        Lista paginata degli ordini.

        I clienti vedono solo i propri ordini; lo staff può filtrare per cliente.

        Returns:
            Tuple di (lista ordini, totale count)
        """
        conditions = []
        if not user.is_staff:
            conditions.append(Order.client_id == user.id)
        elif client_id is not None:
            conditions.append(Order.client_id == client_id)
        if status is not None:
            conditions.append(Order.status == status.value)
        if priority is not None:
            conditions.append(Order.priority == priority.value)
        if search:
            term = f"%{search}%"
            conditions.append(or_(
                Order.order_number.ilike(term),
                Order.client_id.in_(
                    select(User.id).where(or_(
                        User.full_name.ilike(term),
                        User.email.ilike(term),
                        User.company.ilike(term),
                    ))
                ),
            ))

        query = select(Order).order_by(Order.created_at.desc())
        count_query = select(func.count()).select_from(Order)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        orders = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %s ordini su %s (pagina %s)", len(orders), total, page)
        return orders, total

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def _load_service(self, db: AsyncSession, service_id: uuid.UUID) -> Service:
        result = await db.execute(
            select(Service).where(Service.id == service_id, Service.is_active == True)  # noqa: E712
        )
        service = result.scalar_one_or_none()
        if service is None:
            raise NotFoundError(f"Servizio con ID {service_id} non trovato")
        return service

    async def _build_items(
        self,
        db: AsyncSession,
        items_data: list[OrderItemCreate],
    ) -> list[OrderItem]:
        """
        Risolve i servizi, calcola i prezzi e crea le righe con snapshot.

        Raises:
            NotFoundError: Servizio inesistente o disattivato
            InvalidQuantityError: Quantità fuori dai limiti del servizio
        """
        items: list[OrderItem] = []
        for position, item_data in enumerate(items_data):
            service = await self._load_service(db, item_data.service_id)
            quote = price_service(service, item_data.quantity, item_data.options)
            items.append(OrderItem(
                position=position,
                service_id=service.id,
                service_snapshot=to_json(ServiceSnapshot.from_service(service)),
                quantity=item_data.quantity,
                options=dict(item_data.options),
                unit_price=quote.unit_price,
                total_price=quote.total_price,
                files=list(item_data.files),
                notes=item_data.notes,
            ))
        return items

    def _recalculate(self, order: Order) -> None:
        apply_totals(order, compute_totals(
            (item.total_price for item in order.items),
            settings.tax_rate,
            order.discount_amount,
            order.shipping_cost,
        ))

    async def create(self, db: AsyncSession, data: OrderCreate, client: User) -> Order:
        """
        Crea un ordine in stato draft per il cliente.

        Args:
            db: Sessione database
            data: Righe, indirizzi e note
            client: Cliente proprietario

        Returns:
            Ordine creato con numero, snapshot e totali

        Raises:
            NotFoundError: Servizio inesistente
            InvalidQuantityError: Quantità fuori dai limiti
        """
        items = await self._build_items(db, data.items)
        billing = to_json(data.billing_address)

        order = Order(
            order_number=await self.sequences.next_order_number(db),
            client_id=client.id,
            client_snapshot=to_json(ClientSnapshot.from_user(client)),
            status=OrderStatus.DRAFT.value,
            notes=data.notes,
            billing_address=billing,
            shipping_address=to_json(data.shipping_address) or billing,
            payment_status=OrderPaymentStatus.PENDING.value,
            payment_method=data.payment_method.value if data.payment_method else None,
            priority=OrderPriority.NORMAL.value,
            discount_amount=ZERO,
            shipping_cost=ZERO,
            items=items,
        )
        self._recalculate(order)

        db.add(order)
        await db.flush()
        await db.refresh(order)

        logger.info(
            "Creato ordine %s per %s: %s righe, totale %s",
            order.order_number, client.email, len(items), order.total,
        )
        return order

    # ------------------------------------------------------------
    # Modifica
    # ------------------------------------------------------------
    async def update(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: OrderUpdate,
        user: User,
    ) -> Order:
        """
        Aggiorna un ordine secondo le regole di ruolo e stato.

        I campi non modificabili dal chiamante vengono ignorati (e loggati),
        oppure rifiutati se strict_order_locking è attivo.

        Raises:
            NotFoundError: Ordine inesistente
            AuthorizationError: Cliente non proprietario (o campi bloccati in strict)
            InvalidStateError: Transizione di stato non consentita
            InvalidQuantityError: Quantità fuori dai limiti nelle nuove righe
        """
        order = await self.get_by_id(db, order_id)

        submitted = {
            key: getattr(data, key)
            for key in data.model_fields_set
            if not (key in _NON_NULLABLE_FIELDS and getattr(data, key) is None)
        }
        decision = resolve_order_update(
            submitted,
            OrderStatus(order.status),
            is_owner=order.client_id == user.id,
            is_staff=user.is_staff,
            strict=settings.strict_order_locking,
        )
        if decision.ignored:
            logger.info(
                "Ordine %s: campi ignorati per %s (%s): %s",
                order.order_number, user.email, user.role, ", ".join(decision.ignored),
            )

        changes = dict(decision.allowed)
        new_status = changes.pop("status", None)

        if "items" in changes:
            order.items = await self._build_items(db, changes.pop("items"))

        for field, value in changes.items():
            if field in ("billing_address", "shipping_address"):
                value = to_json(value)
            elif field == "priority":
                value = value.value
            setattr(order, field, value)

        self._recalculate(order)

        if new_status is not None:
            changed = apply_status(
                order,
                new_status,
                _utcnow(),
                enforce=settings.enforce_status_transitions,
            )
            if changed:
                logger.info(
                    "Ordine %s: stato -> %s (da %s)",
                    order.order_number, order.status, user.email,
                )

        await db.flush()
        await db.refresh(order)
        return order

    async def delete(self, db: AsyncSession, order_id: uuid.UUID, user: User) -> None:
        """
        Elimina un ordine in bozza.

        Il cliente proprietario può eliminare solo ordini in draft; gli
        amministratori anche ordini annullati senza pagamenti.

        Raises:
            NotFoundError: Ordine inesistente
            AuthorizationError: Non proprietario
            InvalidStateError: Ordine non eliminabile nello stato corrente
        """
        order = await self.get_for_user(db, order_id, user)

        is_admin = user.role == UserRole.ADMIN.value
        if order.client_id != user.id and not is_admin:
            raise AuthorizationError("Solo il cliente proprietario può eliminare l'ordine")

        deletable = {OrderStatus.DRAFT.value}
        if is_admin:
            deletable.add(OrderStatus.CANCELLED.value)
        if order.status not in deletable:
            raise InvalidStateError(
                f"Impossibile eliminare un ordine in stato '{order.status}'",
                extra={"status": order.status},
            )
        if order.payment_status != OrderPaymentStatus.PENDING.value:
            raise InvalidStateError("Impossibile eliminare un ordine con pagamenti registrati")

        await db.delete(order)
        await db.flush()
        logger.info("Eliminato ordine %s da %s", order.order_number, user.email)

    # ------------------------------------------------------------
    # Documenti
    # ------------------------------------------------------------
    async def generate_quote(self, db: AsyncSession, order_id: uuid.UUID, user: User) -> Order:
        """
        Porta l'ordine in stato 'quote' e registra il nome del preventivo.

        Raises:
            InvalidStateError: Ordine oltre lo stato di preventivo
        """
        order = await self.get_for_user(db, order_id, user)
        apply_status(order, OrderStatus.QUOTE, _utcnow(), enforce=settings.enforce_status_transitions)
        order.quote_document = f"quote-{order.order_number}.pdf"

        await db.flush()
        await db.refresh(order)
        logger.info("Generato preventivo %s", order.quote_document)
        return order

    async def generate_invoice_document(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        user: User,
    ) -> Order:
        """
        Registra il nome del documento fattura.

        Raises:
            InvalidStateError: Ordine non in stato ready o delivered
        """
        order = await self.get_for_user(db, order_id, user)
        if OrderStatus(order.status) not in INVOICEABLE_STATUSES:
            raise InvalidStateError(
                "La fattura può essere generata solo per ordini pronti o consegnati",
                extra={"status": order.status},
            )
        order.invoice_document = f"invoice-{order.order_number}.pdf"

        await db.flush()
        await db.refresh(order)
        logger.info("Generata fattura %s", order.invoice_document)
        return order

    # ------------------------------------------------------------
    # Statistiche
    # ------------------------------------------------------------
    async def get_stats(self, db: AsyncSession, months: int = 12) -> OrderStats:
        """
        Totale ordini, fatturato (ordini pagati), ripartizione per stato e per mese.
        """
        total_orders = (await db.execute(select(func.count(Order.id)))).scalar() or 0

        revenue_row = (await db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
            .where(Order.payment_status == OrderPaymentStatus.PAID.value)
        )).one()
        paid_count, revenue = revenue_row
        revenue = quantize_money(revenue or ZERO)

        status_rows = (await db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )).all()

        period = func.to_char(Order.created_at, "YYYY-MM")
        month_rows = (await db.execute(
            select(period, func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
            .group_by(period)
            .order_by(period.desc())
            .limit(months)
        )).all()

        return OrderStats(
            total_orders=total_orders,
            total_revenue=revenue,
            average_order_value=quantize_money(revenue / paid_count) if paid_count else Decimal("0.00"),
            by_status={status: count for status, count in status_rows},
            by_month=[
                PeriodCount(period=p, count=c, amount=quantize_money(a or ZERO))
                for p, c, a in reversed(month_rows)
            ],
        )


order_service = OrderService()

__all__ = ["OrderService", "order_service"]
