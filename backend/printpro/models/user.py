"""
Modello SQLAlchemy per l'entità User
Progetto: PrintPro (Gestionale Tipografia)

Modello per l'autenticazione e gestione utenti del sistema:
clienti della tipografia, dipendenti e amministratori.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from printpro.models import Base
from printpro.models.mixins import TimestampMixin, UUIDMixin


class UserRole(str, Enum):
    """Ruoli utente nel sistema."""
    ADMIN = "admin"
    EMPLOYEE = "employee"
    CLIENT = "client"


STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.EMPLOYEE.value})


class User(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli utenti del sistema.

    Attributes:
        id: UUID primary key, generato automaticamente
        email: Email univoca dell'utente
        hashed_password: Password hashata
        full_name: Nome completo dell'utente
        phone: Telefono (usato anche come numero MVola predefinito)
        company: Ragione sociale del cliente (opzionale)
        role: Ruolo dell'utente (admin, employee, client)
        is_active: Indica se l'utente è attivo
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        doc="Email univoca dell'utente",
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Password hashata",
    )

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Nome completo dell'utente",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Numero di telefono",
    )

    company: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Ragione sociale",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.CLIENT.value,
        doc="Ruolo dell'utente",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Indica se l'utente è attivo",
    )

    __table_args__ = (
        Index("ix_users_email", "email"),
        Index("ix_users_role", "role"),
        CheckConstraint(
            "role IN ('admin', 'employee', 'client')",
            name="ck_users_role",
        ),
    )

    @property
    def is_staff(self) -> bool:
        """True per amministratori e dipendenti."""
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
