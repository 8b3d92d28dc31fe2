"""
Service per la generazione di PDF con WeasyPrint + Jinja2.
Progetto: ISP Billing (Gestionale ISP)
"""

import logging
import os
from datetime import date

from jinja2 import Environment, FileSystemLoader, select_autoescape

from isp_billing.core.config import settings
from isp_billing.models.invoice import Invoice

logger = logging.getLogger(__name__)

# Path alle cartelle templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


# Lazy import of weasyprint to avoid startup errors if GTK libraries aren't available
def _get_weasyprint():
    """Lazy import of weasyprint to handle missing GTK libraries gracefully."""
    try:
        from weasyprint import HTML, CSS
        return HTML, CSS
    except OSError as e:
        raise RuntimeError(
            "Dipendenze di WeasyPrint non trovate: installare Pango/GTK"
        ) from e


def _money(value) -> str:
    return f"{value:,.2f}"


class PdfService:
    """
    Genera PDF da template HTML/CSS usando WeasyPrint + Jinja2.
    Il chiamante passa un Invoice con le relazioni già caricate
    (client, service, service_links, payment_links).
    """

    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["money"] = _money

    def build_context(self, invoice: Invoice) -> dict:
        """Dati passati al template della fattura."""
        if invoice.service_links:
            lines = [
                {
                    "description": link.service.name if link.service else "Servicio",
                    "quantity": link.quantity,
                    "amount": link.amount,
                }
                for link in invoice.service_links
            ]
        else:
            lines = [
                {
                    "description": invoice.service_name or f"Servicio {invoice.category}",
                    "quantity": 1,
                    "amount": invoice.amount,
                }
            ]

        return {
            "company_name": settings.company_name,
            "company_address": settings.company_address,
            "company_phone": settings.company_phone,
            "company_email": settings.company_email,
            "invoice": invoice,
            "client": invoice.client,
            "lines": lines,
            "payments": [
                {"date": link.created_at, "amount": link.amount_applied}
                for link in invoice.payment_links
            ],
            "billing_period": invoice.billing_month.strftime("%m/%Y"),
            "oggi": date.today().strftime("%d/%m/%Y"),
        }

    def render_invoice_html(self, invoice: Invoice) -> str:
        template = self.env.get_template("invoice_template.html")
        return template.render(self.build_context(invoice))

    def generate_invoice_pdf(self, invoice: Invoice) -> bytes:
        """
        Genera il PDF di una fattura.

        Args:
            invoice: Oggetto Invoice con client e righe caricati

        Returns:
            bytes: PDF binario pronto per il download
        """
        # Lazy import weasyprint
        HTML, CSS = _get_weasyprint()

        html_out = self.render_invoice_html(invoice)
        css = CSS(filename=os.path.join(TEMPLATES_DIR, "invoice_style.css"))

        pdf_bytes = HTML(string=html_out, base_url=TEMPLATES_DIR).write_pdf(stylesheets=[css])
        logger.info("Generato PDF della fattura %s (%s byte)", invoice.number, len(pdf_bytes))
        return pdf_bytes
