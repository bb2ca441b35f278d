"""
Contatori atomici per la numerazione progressiva
Progetto: PrintPro (Gestionale Tipografia)

Una riga per periodo e tipo di numero (es. 'order:20240305').
L'incremento avviene con un singolo INSERT ... ON CONFLICT DO UPDATE
... RETURNING, così due richieste concorrenti non leggono mai lo
stesso valore.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from printpro.models import Base


class SequenceCounter(Base):
    """Contatore per chiave di periodo."""

    __tablename__ = "sequence_counters"

    key: Mapped[str] = mapped_column(String(60), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter(key={self.key}, value={self.value})>"
