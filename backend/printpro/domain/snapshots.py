"""
Snapshot immutabili salvati sull'ordine
Progetto: PrintPro (Gestionale Tipografia)

Copiano solo i campi necessari alla visualizzazione storica, così un
ordine continua a mostrare nome, prezzo e indirizzi originali anche se
il listino o l'anagrafica cambiano in seguito.
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Address(BaseModel):
    """Indirizzo di fatturazione o spedizione."""

    model_config = ConfigDict(frozen=True)

    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: str = Field("Madagascar", max_length=100)


class ClientSnapshot(BaseModel):
    """Dati del cliente al momento dell'ordine."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    full_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None

    @classmethod
    def from_user(cls, user: Any) -> "ClientSnapshot":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone=user.phone,
            company=user.company,
        )


class ServiceSnapshot(BaseModel):
    """Dati del servizio del listino al momento dell'ordine."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    category: str
    unit: str
    base_price: Decimal
    description: Optional[str] = None

    @classmethod
    def from_service(cls, service: Any) -> "ServiceSnapshot":
        return cls(
            id=service.id,
            name=service.name,
            category=service.category,
            unit=service.unit,
            base_price=service.base_price,
            description=service.description,
        )


def to_json(snapshot: Optional[BaseModel]) -> Optional[dict[str, Any]]:
    """Serializzazione per le colonne JSON."""
    if snapshot is None:
        return None
    return snapshot.model_dump(mode="json")
