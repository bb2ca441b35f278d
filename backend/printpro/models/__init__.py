"""
Modelli Database SQLAlchemy
Progetto: PrintPro (Gestionale Tipografia)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- User: Utenti (clienti, dipendenti, amministratori)
- Service: Listino servizi di stampa
- Order / OrderItem: Ordini e righe d'ordine
- Payment / PaymentRefund: Pagamenti e rimborsi
- Invoice / InvoiceLine: Fatture, preventivi, note di credito
- FileDocument / FileVersion: File caricati e versioni derivate
- SequenceCounter: Contatori atomici per la numerazione
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


# Import modelli implementati
from printpro.models.user import User
from printpro.models.service import Service
from printpro.models.order import Order, OrderItem
from printpro.models.payment import Payment, PaymentRefund
from printpro.models.invoice import Invoice, InvoiceLine
from printpro.models.file import FileDocument, FileVersion
from printpro.models.sequence import SequenceCounter

__all__ = [
    "Base",
    "User",
    "Service",
    "Order",
    "OrderItem",
    "Payment",
    "PaymentRefund",
    "Invoice",
    "InvoiceLine",
    "FileDocument",
    "FileVersion",
    "SequenceCounter",
]
