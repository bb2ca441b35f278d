"""
Schemas Pydantic per l'entità User
Progetto: PrintPro (Gestionale Tipografia)

Schemas per validazione e serializzazione dati utente.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from printpro.models.user import UserRole
from printpro.schemas.common import PaginatedList


class UserCreate(BaseModel):
    """
    Schema per la registrazione di un nuovo utente.

    Attributes:
        email: Email dell'utente (deve essere univoca)
        password: Password in chiaro (min 8, max 100 caratteri)
        full_name: Nome completo dell'utente
        phone: Telefono (opzionale)
        company: Ragione sociale (opzionale)
        role: Ruolo dell'utente (default: client)
    """

    email: EmailStr = Field(..., description="Email univoca dell'utente")
    password: str = Field(
        min_length=8,
        max_length=100,
        description="Password in chiaro (min 8, max 100 caratteri)",
    )
    full_name: str = Field(
        min_length=1,
        max_length=100,
        description="Nome completo dell'utente",
    )
    phone: Optional[str] = Field(None, max_length=20, description="Telefono")
    company: Optional[str] = Field(None, max_length=200, description="Ragione sociale")
    role: UserRole = Field(
        default=UserRole.CLIENT,
        description="Ruolo dell'utente",
    )

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """Valida la robustezza della password."""
        if not any(c.isdigit() for c in v) or not any(c.isalpha() for c in v):
            raise ValueError("La password deve contenere lettere e numeri")
        return v


class UserLogin(BaseModel):
    """Schema per il login utente."""

    email: EmailStr = Field(..., description="Email dell'utente")
    password: str = Field(..., description="Password in chiaro")


class UserUpdate(BaseModel):
    """
    Schema per l'aggiornamento del profilo.

    Tutti i campi sono opzionali per permettere aggiornamenti parziali.
    """

    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=200)


class UserStatusUpdate(BaseModel):
    """Attivazione / disattivazione di un utente (solo admin)."""

    is_active: bool = Field(..., description="Indica se l'utente è attivo")


class UserResponse(BaseModel):
    """
    Schema per la risposta contenente dati utente.

    Utilizzato per le risposte API che espongono dati utente.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="UUID dell'utente")
    email: str = Field(..., description="Email dell'utente")
    full_name: str = Field(..., description="Nome completo dell'utente")
    phone: Optional[str] = None
    company: Optional[str] = None
    role: UserRole = Field(..., description="Ruolo dell'utente")
    is_active: bool = Field(..., description="Indica se l'utente è attivo")
    created_at: datetime = Field(..., description="Data/ora di creazione")


class UserList(PaginatedList):
    items: list[UserResponse] = Field(default_factory=list)


# Export degli schemas
__all__ = [
    "UserCreate",
    "UserLogin",
    "UserUpdate",
    "UserStatusUpdate",
    "UserResponse",
    "UserList",
]
