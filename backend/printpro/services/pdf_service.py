"""
Service per la generazione di PDF con WeasyPrint + Jinja2.
Progetto: PrintPro (Gestionale Tipografia)
"""

import logging
import os
from datetime import date
from decimal import Decimal

from jinja2 import Environment, FileSystemLoader, select_autoescape

from printpro.core.config import settings
from printpro.models.invoice import Invoice, InvoiceType

logger = logging.getLogger(__name__)

# Path alle cartelle templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


# Lazy import of weasyprint to avoid startup errors if GTK/Pango libraries aren't available
def _get_weasyprint():
    """Lazy import of weasyprint to handle missing system libraries gracefully."""
    try:
        from weasyprint import HTML, CSS
        return HTML, CSS
    except OSError as e:
        raise RuntimeError(
            "WeasyPrint dependencies not found. Please install Pango libraries: "
            "apt install libpango-1.0-0 libpangoft2-1.0-0"
        ) from e


def format_amount(value) -> str:
    """1234567.5 -> '1 234 567,50'"""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    integer, _, decimals = f"{amount:,.2f}".partition(".")
    return f"{integer.replace(',', ' ')},{decimals}"


def format_quantity(value) -> str:
    """Decimal('500.00') -> '500', Decimal('2.50') -> '2,5'"""
    quantity = Decimal(str(value or 0))
    if quantity == quantity.to_integral_value():
        return str(int(quantity))
    return format(quantity.normalize(), "f").replace(".", ",")


class PdfService:
    """
    Genera PDF da template HTML/CSS usando WeasyPrint + Jinja2.
    Il chiamante è responsabile di passare un Invoice con le righe caricate.
    """

    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["amount"] = format_amount
        self.env.filters["quantity"] = format_quantity

    def render_invoice_html(self, invoice: Invoice) -> str:
        """
        Rende l'HTML del documento.

        Separato dalla conversione PDF: accede agli attributi ORM e va
        eseguito nel thread della sessione.
        """
        template = self.env.get_template("invoice_template.html")

        snapshot = invoice.client_snapshot or {}
        address = invoice.billing_address or {}

        context = {
            # Dati tipografia (da settings)
            "company_name": settings.invoice_company_name,
            "company_address": settings.invoice_address,
            "company_vat": settings.invoice_vat_number,
            "company_phone": settings.invoice_phone,
            "company_email": settings.invoice_email,

            # Documento
            "invoice": invoice,
            "lines": list(invoice.lines),
            "show_due_date": invoice.invoice_type == InvoiceType.INVOICE.value,
            "tax_percent": format_quantity(invoice.tax_rate * 100),
            "oggi": date.today().strftime("%d/%m/%Y"),

            # Intestatario
            "billing_name": snapshot.get("full_name", ""),
            "billing_company": snapshot.get("company") or "",
            "billing_email": snapshot.get("email", ""),
            "billing_address": address,
        }
        return template.render(context)

    def html_to_pdf(self, html: str) -> bytes:
        """Conversione WeasyPrint (bloccante: da eseguire fuori dall'event loop)."""
        HTML, CSS = _get_weasyprint()
        css = CSS(filename=os.path.join(TEMPLATES_DIR, "invoice_style.css"))
        return HTML(string=html, base_url=TEMPLATES_DIR).write_pdf(stylesheets=[css])

    def generate_invoice_pdf(self, invoice: Invoice) -> bytes:
        """
        Genera il PDF di un documento.

        Args:
            invoice: Oggetto Invoice con lines caricate

        Returns:
            bytes: PDF binario pronto per il download
        """
        return self.html_to_pdf(self.render_invoice_html(invoice))


pdf_service = PdfService()
