"""
Schemas Pydantic condivisi
Progetto: PrintPro (Gestionale Tipografia)
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class PaginatedList(BaseModel):
    """
    Metadati di paginazione comuni a tutte le liste.

    Le sottoclassi aggiungono il campo items tipizzato.
    """

    model_config = ConfigDict(from_attributes=True)

    total: int = Field(..., ge=0, description="Numero totale di elementi")
    page: int = Field(..., ge=1, description="Numero pagina corrente")
    per_page: int = Field(..., ge=1, description="Numero elementi per pagina")

    @computed_field
    def total_pages(self) -> int:
        """ceil(total / per_page)"""
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0


class PeriodCount(BaseModel):
    """Aggregato mensile usato dalle statistiche."""

    period: str = Field(..., description="Mese nel formato YYYY-MM")
    count: int = Field(..., ge=0)
    amount: Decimal = Field(..., description="Importo totale del periodo")
