"""
Schemas Pydantic per il listino servizi
Progetto: PrintPro (Gestionale Tipografia)
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from printpro.domain.pricing import OptionType
from printpro.models.service import ServiceCategory, ServiceUnit
from printpro.schemas.common import PaginatedList


class ServiceOption(BaseModel):
    """
    Opzione a pagamento di un servizio.

    Attributes:
        id: Identificativo usato nelle opzioni selezionate
        name: Etichetta leggibile
        type: select, checkbox, number, text
        choices: Valori ammessi (obbligatori per select)
        price_modifier: Importo aggiunto al prezzo unitario
        required: Opzione obbligatoria
    """

    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    type: OptionType = Field(default=OptionType.CHECKBOX)
    choices: list[str] = Field(default_factory=list)
    price_modifier: Decimal = Field(default=Decimal("0"))
    required: bool = False

    @model_validator(mode="after")
    def validate_choices(self) -> "ServiceOption":
        if self.type == OptionType.SELECT and not self.choices:
            raise ValueError(f"L'opzione select '{self.name}' deve avere almeno un valore")
        return self


def _check_unique_ids(options: list[ServiceOption]) -> None:
    ids = [option.id for option in options]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Opzioni duplicate: {', '.join(duplicates)}")


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: ServiceCategory
    base_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    unit: ServiceUnit = Field(default=ServiceUnit.UNIT)
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int = Field(default=10000, ge=1)
    options: list[ServiceOption] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    estimated_delivery_days: int = Field(default=7, ge=0)


class ServiceCreate(ServiceBase):
    """Schema per la creazione di un servizio (solo admin)."""

    @model_validator(mode="after")
    def validate_service(self) -> "ServiceCreate":
        if self.min_quantity > self.max_quantity:
            raise ValueError("min_quantity non può superare max_quantity")
        _check_unique_ids(self.options)
        return self


class ServiceUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un servizio.

    Il vincolo min_quantity <= max_quantity viene ricontrollato dal service
    sui valori risultanti, perché il payload può contenerne solo uno.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[ServiceCategory] = None
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    unit: Optional[ServiceUnit] = None
    min_quantity: Optional[int] = Field(None, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    options: Optional[list[ServiceOption]] = None
    images: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    estimated_delivery_days: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def validate_options(self) -> "ServiceUpdate":
        if self.options is not None:
            _check_unique_ids(self.options)
        return self


class ServiceRead(ServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ServiceList(PaginatedList):
    items: list[ServiceRead] = Field(default_factory=list)


class PriceCalculationRequest(BaseModel):
    """Richiesta di calcolo prezzo per un servizio."""

    quantity: int = Field(..., gt=0)
    options: dict[str, Any] = Field(default_factory=dict)


class PriceCalculationResponse(BaseModel):
    service_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    applied_options: list[str] = Field(default_factory=list)
    ignored_options: list[str] = Field(default_factory=list)


class CategoryStats(BaseModel):
    """Statistiche per categoria del listino."""

    category: str
    count: int
    avg_price: Decimal
    min_price: Decimal
    max_price: Decimal


__all__ = [
    "ServiceOption",
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceRead",
    "ServiceList",
    "PriceCalculationRequest",
    "PriceCalculationResponse",
    "CategoryStats",
]
