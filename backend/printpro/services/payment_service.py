"""
Service Layer per i Pagamenti
Progetto: PrintPro (Gestionale Tipografia)

Definisce la logica applicativa dei pagamenti:
- Creazione con numerazione atomica e calcolo commissioni
- Avvio transazioni MVola
- Aggiornamento di stato (admin) e callback del provider
- Rimborsi parziali e totali
- Statistiche e report finanziario
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    InvalidStateError,
    NotFoundError,
    PaymentGatewayError,
)
from printpro.domain.money import ZERO, quantize_money
from printpro.domain.order_state import OrderPaymentStatus, OrderStatus
from printpro.domain.payments import (
    PaymentMethod,
    PaymentStatus,
    calculate_fees,
    map_mvola_status,
    plan_refund,
)
from printpro.models import Order, Payment, PaymentRefund, User
from printpro.schemas.common import PeriodCount
from printpro.schemas.payment import (
    FinancialReport,
    MethodBreakdown,
    PaymentCreate,
    PaymentStats,
    PaymentStatusUpdate,
    RefundCreate,
)
from printpro.services.mvola_client import MVolaClient
from printpro.services.sequence_service import SequenceService, sequence_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Effetto di uno stato di pagamento sullo stato di pagamento dell'ordine
_ORDER_PAYMENT_STATUS = {
    PaymentStatus.COMPLETED: OrderPaymentStatus.PAID,
    PaymentStatus.FAILED: OrderPaymentStatus.FAILED,
    PaymentStatus.REFUNDED: OrderPaymentStatus.REFUNDED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _refund_id() -> str:
    return f"REF-{int(_utcnow().timestamp() * 1000)}"


class PaymentService:
    """Service per la gestione dei pagamenti."""

    def __init__(self, sequences: Optional[SequenceService] = None) -> None:
        self.sequences = sequences or sequence_service

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------
    async def get_by_id(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        """
        Raises:
            NotFoundError: Se il pagamento non esiste
        """
        result = await db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError(f"Pagamento con ID {payment_id} non trovato")
        return payment

    async def get_for_user(self, db: AsyncSession, payment_id: uuid.UUID, user: User) -> Payment:
        """
        Raises:
            AuthorizationError: Cliente diverso dal titolare del pagamento
        """
        payment = await self.get_by_id(db, payment_id)
        if not user.is_staff and payment.client_id != user.id:
            raise AuthorizationError("Accesso non autorizzato a questo pagamento")
        return payment

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        per_page: int = 20,
        status: Optional[PaymentStatus] = None,
        method: Optional[PaymentMethod] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Payment], int]:
        """Lista paginata; i clienti vedono solo i propri pagamenti."""
        conditions = []
        if not user.is_staff:
            conditions.append(Payment.client_id == user.id)
        if status is not None:
            conditions.append(Payment.status == status.value)
        if method is not None:
            conditions.append(Payment.method == method.value)
        if order_id is not None:
            conditions.append(Payment.order_id == order_id)

        query = select(Payment).order_by(Payment.created_at.desc())
        count_query = select(func.count()).select_from(Payment)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        payments = list(result.scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return payments, total

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def create(
        self,
        db: AsyncSession,
        data: PaymentCreate,
        client: User,
        mvola: MVolaClient,
    ) -> Payment:
        """
        Crea un pagamento per un ordine del cliente.

        Per i pagamenti MVola la transazione viene avviata subito: in caso di
        successo il pagamento passa a 'processing'; se il provider fallisce il
        pagamento viene salvato come 'failed' e viene sollevato
        PaymentGatewayError.

        Raises:
            NotFoundError: Ordine inesistente
            AuthorizationError: Ordine di un altro cliente
            InvalidStateError: Ordine annullato
            BusinessValidationError: Importo superiore al totale ordine
            PaymentGatewayError: Errore del provider MVola
        """
        result = await db.execute(select(Order).where(Order.id == data.order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Ordine con ID {data.order_id} non trovato")
        if order.client_id != client.id:
            raise AuthorizationError("Non puoi pagare un ordine di un altro cliente")
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidStateError("Impossibile pagare un ordine annullato")
        if data.amount > order.total:
            raise BusinessValidationError(
                f"Importo ({data.amount}) superiore al totale ordine ({order.total})"
            )

        fees = calculate_fees(data.amount, data.method)
        payment = Payment(
            payment_number=await self.sequences.next_payment_number(db),
            order_id=order.id,
            client_id=client.id,
            amount=quantize_money(data.amount),
            currency=data.currency.upper(),
            method=data.method.value,
            status=PaymentStatus.PENDING.value,
            payment_type=data.payment_type.value,
            processing_fee=fees.processing_fee,
            platform_fee=fees.platform_fee,
            mvola_phone_number=data.mvola_phone_number,
            installment_plan=(
                data.installment_plan.model_dump(mode="json") if data.installment_plan else None
            ),
            description=data.description,
            refunds=[],
            extra_data={},
        )
        order.payment_method = data.method.value
        db.add(payment)
        await db.flush()

        if data.method == PaymentMethod.MVOLA:
            await self._initiate_mvola(db, payment, order, mvola)

        await db.refresh(payment)
        logger.info(
            "Creato pagamento %s per ordine %s: %s %s (%s)",
            payment.payment_number, order.order_number, payment.amount,
            payment.currency, payment.method,
        )
        return payment

    async def _initiate_mvola(
        self,
        db: AsyncSession,
        payment: Payment,
        order: Order,
        mvola: MVolaClient,
    ) -> None:
        try:
            transaction = await mvola.initiate_payment(
                amount=payment.amount,
                phone_number=payment.mvola_phone_number,
                reference=payment.payment_number,
                description=f"Commande {order.order_number}",
            )
        except PaymentGatewayError as e:
            payment.status = PaymentStatus.FAILED.value
            payment.failure_reason = e.detail
            # Il pagamento fallito resta registrato anche se la richiesta termina con errore
            await db.commit()
            logger.warning("Pagamento %s fallito presso MVola: %s", payment.payment_number, e.detail)
            raise

        payment.status = PaymentStatus.PROCESSING.value
        payment.mvola_transaction_id = transaction.transaction_id
        payment.mvola_reference = payment.payment_number
        payment.mvola_status = transaction.status
        await db.flush()

    # ------------------------------------------------------------
    # Stato
    # ------------------------------------------------------------
    def _apply_status(self, payment: Payment, new_status: PaymentStatus) -> None:
        payment.status = new_status.value
        if new_status == PaymentStatus.COMPLETED and payment.processed_at is None:
            payment.processed_at = _utcnow()

        order_status = _ORDER_PAYMENT_STATUS.get(new_status)
        if order_status is not None and payment.order is not None:
            payment.order.payment_status = order_status.value

    def _apply_provider_status(self, payment: Payment, provider_status: str) -> None:
        """
        Allinea il pagamento allo stato comunicato da MVola.

        Un pagamento rimborsato non cambia più stato; 'refunded' dal provider
        viene applicato solo se i rimborsi registrati coprono l'importo.
        """
        payment.mvola_status = provider_status
        new_status = map_mvola_status(provider_status)

        if payment.status == PaymentStatus.REFUNDED.value:
            logger.warning(
                "Stato MVola %s ignorato: pagamento %s già rimborsato",
                provider_status, payment.payment_number,
            )
            return
        if new_status == PaymentStatus.REFUNDED and payment.refunded_amount < payment.amount:
            logger.warning(
                "Stato MVola %s ignorato per %s: rimborsati %s su %s",
                provider_status, payment.payment_number, payment.refunded_amount, payment.amount,
            )
            return

        self._apply_status(payment, new_status)

    async def update_status(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        data: PaymentStatusUpdate,
        admin: User,
    ) -> Payment:
        """
        Aggiornamento manuale dello stato (solo admin).

        'completed' valorizza processed_at e segna l'ordine come pagato;
        'failed' segna l'ordine come fallito. Lo stato 'refunded' si
        raggiunge solo tramite rimborso.

        Raises:
            InvalidStateError: Richiesto 'refunded' o pagamento già rimborsato
        """
        payment = await self.get_by_id(db, payment_id)

        if data.status == PaymentStatus.REFUNDED:
            raise InvalidStateError("Usa l'operazione di rimborso per rimborsare un pagamento")
        if payment.status == PaymentStatus.REFUNDED.value:
            raise InvalidStateError("Un pagamento rimborsato non può cambiare stato")

        self._apply_status(payment, data.status)
        if data.failure_reason is not None:
            payment.failure_reason = data.failure_reason

        await db.flush()
        await db.refresh(payment)
        logger.info(
            "Pagamento %s: stato -> %s (da %s)",
            payment.payment_number, payment.status, admin.email,
        )
        return payment

    async def handle_mvola_callback(
        self,
        db: AsyncSession,
        payload: Mapping[str, Any],
        mvola: MVolaClient,
    ) -> Payment:
        """
        Notifica asincrona del provider.

        Raises:
            AuthorizationError: Firma non valida
            NotFoundError: Transazione sconosciuta
        """
        if not mvola.verify_signature(payload):
            logger.warning("Callback MVola con firma non valida: %s", payload.get("transactionId"))
            raise AuthorizationError("Firma del callback non valida")

        transaction_id = payload.get("transactionId")
        result = await db.execute(
            select(Payment).where(Payment.mvola_transaction_id == str(transaction_id))
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError(f"Transazione MVola {transaction_id} non trovata")

        provider_status = str(payload.get("status") or "")
        self._apply_provider_status(payment, provider_status)

        await db.flush()
        await db.refresh(payment)
        logger.info(
            "Callback MVola: pagamento %s -> %s (%s)",
            payment.payment_number, payment.status, provider_status,
        )
        return payment

    async def sync_mvola_status(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        user: User,
        mvola: MVolaClient,
    ) -> Payment:
        """Interroga il provider e allinea lo stato di un pagamento in corso."""
        payment = await self.get_for_user(db, payment_id, user)
        if payment.method != PaymentMethod.MVOLA.value or not payment.mvola_transaction_id:
            raise BusinessValidationError("Il pagamento non ha una transazione MVola")
        if payment.status not in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
            return payment

        transaction = await mvola.check_status(payment.mvola_transaction_id)
        self._apply_provider_status(payment, transaction.status)

        await db.flush()
        await db.refresh(payment)
        return payment

    # ------------------------------------------------------------
    # Rimborsi
    # ------------------------------------------------------------
    async def refund(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        data: RefundCreate,
        admin: User,
        mvola: MVolaClient,
    ) -> Payment:
        """
        Registra un rimborso (solo admin).

        I rimborsi MVola passano prima dal provider. Lo stato diventa
        'refunded' solo quando il totale rimborsato raggiunge l'importo.

        Raises:
            InvalidStateError: Pagamento non completato o importo oltre il residuo
            BusinessValidationError: Motivo mancante
            PaymentGatewayError: Errore del provider MVola
        """
        payment = await self.get_by_id(db, payment_id)
        plan = plan_refund(
            payment.amount,
            PaymentStatus(payment.status),
            [r.amount for r in payment.refunds],
            data.reason,
            data.amount,
        )

        refund_id = _refund_id()
        if payment.method == PaymentMethod.MVOLA.value and payment.mvola_transaction_id:
            response = await mvola.refund(payment.mvola_transaction_id, plan.amount, plan.reason)
            refund_id = str(response.get("refundId") or refund_id)

        payment.refunds.append(PaymentRefund(
            refund_id=refund_id,
            amount=plan.amount,
            reason=plan.reason,
            processed_by_id=admin.id,
            created_at=_utcnow(),
        ))
        if plan.fully_refunded:
            self._apply_status(payment, PaymentStatus.REFUNDED)

        await db.flush()
        await db.refresh(payment)
        logger.info(
            "Rimborso %s su %s: %s (totale rimborsato %s, da %s)",
            refund_id, payment.payment_number, plan.amount, plan.refunded_total, admin.email,
        )
        return payment

    # ------------------------------------------------------------
    # Statistiche
    # ------------------------------------------------------------
    async def _method_breakdown(self, db: AsyncSession, *conditions: Any) -> list[MethodBreakdown]:
        rows = (await db.execute(
            select(
                Payment.method,
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
                func.coalesce(func.sum(Payment.processing_fee + Payment.platform_fee), 0),
            )
            .where(*conditions)
            .group_by(Payment.method)
            .order_by(Payment.method)
        )).all()
        return [
            MethodBreakdown(
                method=method,
                count=count,
                amount=quantize_money(amount),
                fees=quantize_money(fees),
            )
            for method, count, amount, fees in rows
        ]

    async def _sum_amount(self, db: AsyncSession, *conditions: Any) -> Decimal:
        value = (await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(*conditions)
        )).scalar()
        return quantize_money(value or ZERO)

    async def _sum_refunds(self, db: AsyncSession, *conditions: Any) -> Decimal:
        value = (await db.execute(
            select(func.coalesce(func.sum(PaymentRefund.amount), 0)).where(*conditions)
        )).scalar()
        return quantize_money(value or ZERO)

    async def get_stats(self, db: AsyncSession, months: int = 12) -> PaymentStats:
        """Totali per stato, per metodo e per mese."""
        total_payments = (await db.execute(select(func.count(Payment.id)))).scalar() or 0
        completed = Payment.status == PaymentStatus.COMPLETED.value

        fees = (await db.execute(
            select(func.coalesce(func.sum(Payment.processing_fee + Payment.platform_fee), 0))
            .where(completed)
        )).scalar()

        period = func.to_char(Payment.created_at, "YYYY-MM")
        month_rows = (await db.execute(
            select(period, func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
            .where(completed)
            .group_by(period)
            .order_by(period.desc())
            .limit(months)
        )).all()

        return PaymentStats(
            total_payments=total_payments,
            completed_amount=await self._sum_amount(db, completed),
            pending_amount=await self._sum_amount(
                db,
                Payment.status.in_([PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value]),
            ),
            refunded_amount=await self._sum_refunds(db),
            total_fees=quantize_money(fees or ZERO),
            by_method=await self._method_breakdown(db, completed),
            by_month=[
                PeriodCount(period=p, count=c, amount=quantize_money(a or ZERO))
                for p, c, a in reversed(month_rows)
            ],
        )

    async def financial_report(
        self,
        db: AsyncSession,
        date_from: date,
        date_to: date,
    ) -> FinancialReport:
        """
        Report sui pagamenti completati o rimborsati nell'intervallo [date_from, date_to].

        net_revenue = incassato - commissioni - rimborsi
        """
        if date_from > date_to:
            raise BusinessValidationError("date_from deve precedere date_to")

        tz = ZoneInfo(settings.timezone)
        lower = datetime.combine(date_from, time.min, tzinfo=tz)
        upper = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=tz)
        in_range = (
            Payment.created_at >= lower,
            Payment.created_at < upper,
            Payment.status.in_([PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value]),
        )

        row = (await db.execute(
            select(
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
                func.coalesce(func.sum(Payment.processing_fee), 0),
                func.coalesce(func.sum(Payment.platform_fee), 0),
            ).where(*in_range)
        )).one()
        count, revenue, processing, platform = row
        revenue = quantize_money(revenue)
        processing = quantize_money(processing)
        platform = quantize_money(platform)

        refunded = await self._sum_refunds(
            db,
            PaymentRefund.created_at >= lower,
            PaymentRefund.created_at < upper,
        )

        return FinancialReport(
            date_from=date_from,
            date_to=date_to,
            currency=settings.currency,
            total_revenue=revenue,
            processing_fees=processing,
            platform_fees=platform,
            refunded_amount=refunded,
            net_revenue=revenue - processing - platform - refunded,
            payments_count=count,
            by_method=await self._method_breakdown(db, *in_range),
        )


payment_service = PaymentService()

__all__ = ["PaymentService", "payment_service"]
