"""
Modello SQLAlchemy per il listino servizi
Progetto: PrintPro (Gestionale Tipografia)

Un servizio è un prodotto stampabile (flyer, biglietti da visita,
manifesti...) con prezzo base, limiti di quantità e opzioni a pagamento.
Non viene mai eliminato fisicamente: gli ordini storici lo referenziano.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from printpro.domain.pricing import PricedOption
from printpro.models import Base
from printpro.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class ServiceCategory(str, Enum):
    """Categorie del listino."""
    FLYERS = "flyers"
    CARTES = "cartes"
    AFFICHES = "affiches"
    BROCHURES = "brochures"
    AUTRES = "autres"


class ServiceUnit(str, Enum):
    """Unità di misura del prezzo."""
    UNIT = "unité"
    PAGE = "page"
    SQUARE_METER = "m²"


class Service(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per i servizi del listino.

    Attributes:
        name: Nome del servizio
        description: Descrizione estesa
        category: Categoria (flyers, cartes, affiches, brochures, autres)
        base_price: Prezzo unitario base
        unit: Unità di misura (unité, page, m²)
        min_quantity: Quantità minima ordinabile
        max_quantity: Quantità massima ordinabile
        options: Opzioni a pagamento (lista JSON di
            {id, name, type, choices, price_modifier, required})
        images: Percorsi immagini di presentazione
        tags: Etichette per la ricerca
        estimated_delivery_days: Giorni lavorativi stimati per la consegna
        is_active: False = servizio disattivato (soft delete)
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nome del servizio",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione estesa",
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Categoria del listino",
    )

    base_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Prezzo unitario base",
    )

    unit: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ServiceUnit.UNIT.value,
        doc="Unità di misura",
    )

    min_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Quantità minima ordinabile",
    )

    max_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=10000,
        doc="Quantità massima ordinabile",
    )

    options: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Opzioni a pagamento",
    )

    images: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Immagini di presentazione",
    )

    tags: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Etichette",
    )

    estimated_delivery_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=7,
        doc="Giorni stimati per la consegna",
    )

    __table_args__ = (
        Index("ix_services_category", "category"),
        Index("ix_services_is_active", "is_active"),
        CheckConstraint("base_price >= 0", name="ck_services_base_price_positive"),
        CheckConstraint("min_quantity >= 1", name="ck_services_min_quantity_positive"),
        CheckConstraint("min_quantity <= max_quantity", name="ck_services_quantity_range"),
        CheckConstraint(
            "category IN ('flyers', 'cartes', 'affiches', 'brochures', 'autres')",
            name="ck_services_category",
        ),
    )

    @property
    def priced_options(self) -> list[PricedOption]:
        """Opzioni come value object per il calcolo prezzi."""
        return [PricedOption.from_dict(option) for option in self.options or []]

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, base_price={self.base_price})>"
