"""
Pytest configuration e fixtures condivise.

La sessione database è un AsyncMock: i service vengono esercitati senza
PostgreSQL, pilotando i risultati di db.execute() con make_result().
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.domain.order_state import OrderPaymentStatus, OrderPriority, OrderStatus
from printpro.models import Order, OrderItem, Service, User
from printpro.models.user import UserRole


# ============================================================
# Helper per i risultati di db.execute()
# ============================================================


def make_result(value=None, values=None, scalar=None, rows=None, one=None):
    """
    Crea un mock del Result SQLAlchemy.

    Args:
        value: Ritorno di scalar_one_or_none() / scalar_one()
        values: Lista ritornata da scalars().all()
        scalar: Ritorno di scalar()
        rows: Lista ritornata da all()
        one: Tupla ritornata da one()
    """
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.scalars.return_value.all.return_value = values or []
    result.scalar.return_value = scalar
    result.all.return_value = rows or []
    result.one.return_value = one
    return result


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


# ============================================================
# Fixtures per Utenti
# ============================================================


def build_user(role: UserRole, **kwargs) -> User:
    return User(
        id=kwargs.get("id", uuid.uuid4()),
        email=kwargs.get("email", f"{role.value}@printpro.mg"),
        hashed_password="hashed",
        full_name=kwargs.get("full_name", "Rakoto Jean"),
        phone=kwargs.get("phone", "+261341234567"),
        company=kwargs.get("company"),
        role=role.value,
        is_active=True,
    )


@pytest.fixture
def admin_user():
    return build_user(UserRole.ADMIN, full_name="Admin PrintPro")


@pytest.fixture
def employee_user():
    return build_user(UserRole.EMPLOYEE, full_name="Rabe Employé")


@pytest.fixture
def client_user():
    return build_user(UserRole.CLIENT, company="Imprimerie Tana")


@pytest.fixture
def other_client():
    return build_user(UserRole.CLIENT, email="autre@client.mg", full_name="Rasoa Autre")


# ============================================================
# Fixtures per Listino e Ordini
# ============================================================


@pytest.fixture
def flyer_service():
    """Flyers A5: 50 MGA l'unità, da 100 a 10000 pezzi, plastificazione +10."""
    return Service(
        id=uuid.uuid4(),
        name="Flyers A5",
        description="Flyers couleur recto-verso",
        category="flyers",
        base_price=Decimal("50.00"),
        unit="unité",
        min_quantity=100,
        max_quantity=10000,
        options=[
            {
                "id": "lamination",
                "name": "Pelliculage",
                "type": "checkbox",
                "price_modifier": "10",
            },
            {
                "id": "paper",
                "name": "Papier",
                "type": "select",
                "choices": ["couché 135g", "couché 250g"],
                "price_modifier": "5",
            },
        ],
        images=[],
        tags=["flyers"],
        estimated_delivery_days=5,
        is_active=True,
    )


@pytest.fixture
def billing_address():
    return {"street": "Lot II A 12 Analakely", "city": "Antananarivo", "postal_code": "101", "country": "Madagascar"}


def build_order(client: User, service: Service, status: OrderStatus = OrderStatus.DRAFT, **kwargs) -> Order:
    """Ordine transiente con una riga da 500 flyers (25000 + IVA 20%)."""
    item = OrderItem(
        id=uuid.uuid4(),
        position=0,
        service_id=service.id,
        service_snapshot={
            "id": str(service.id),
            "name": service.name,
            "category": service.category,
            "unit": service.unit,
            "base_price": str(service.base_price),
            "description": service.description,
        },
        quantity=500,
        options={},
        unit_price=Decimal("50.00"),
        total_price=Decimal("25000.00"),
        files=[],
    )
    return Order(
        id=kwargs.get("id", uuid.uuid4()),
        order_number=kwargs.get("order_number", "PP202403050001"),
        client_id=client.id,
        client_snapshot={
            "id": str(client.id),
            "full_name": client.full_name,
            "email": client.email,
            "phone": client.phone,
            "company": client.company,
        },
        status=status.value,
        subtotal=Decimal("25000.00"),
        tax_amount=Decimal("5000.00"),
        discount_amount=kwargs.get("discount_amount", Decimal("0.00")),
        shipping_cost=kwargs.get("shipping_cost", Decimal("0.00")),
        total=kwargs.get("total", Decimal("30000.00")),
        billing_address={"street": "Lot II A 12 Analakely", "city": "Antananarivo", "country": "Madagascar"},
        shipping_address=None,
        payment_status=kwargs.get("payment_status", OrderPaymentStatus.PENDING.value),
        payment_method=None,
        priority=OrderPriority.NORMAL.value,
        items=[item],
    )


@pytest.fixture
def draft_order(client_user, flyer_service):
    return build_order(client_user, flyer_service)


@pytest.fixture
def ready_order(client_user, flyer_service):
    return build_order(client_user, flyer_service, OrderStatus.READY)


# ============================================================
# Fixtures per la numerazione
# ============================================================


@pytest.fixture
def mock_sequences():
    """SequenceService con numeri fissi."""
    sequences = MagicMock()
    sequences.next_order_number = AsyncMock(return_value="PP202403050001")
    sequences.next_payment_number = AsyncMock(return_value="PAY-20240305-0001")
    sequences.next_invoice_number = AsyncMock(return_value="INVOICE-202403-0001")
    return sequences
