"""
PDF Generation Service.
Renders invoice and estimate PDFs using ReportLab.
"""

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.enums import TA_RIGHT
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
    Image,
)
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.models.estimate import Estimate
from app.models.invoice import Invoice
from app.models.user import User


logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


class PDFService:
    """Service for generating document PDFs."""

    def __init__(self):
        self.storage_path = Path(settings.PDF_STORAGE_PATH)
        self.storage_path.mkdir(parents=True, exist_ok=True)

        self.primary_color = colors.HexColor("#2563EB")
        self.estimate_color = colors.HexColor("#059669")
        self.gray_color = colors.HexColor("#6B7280")
        self.light_gray = colors.HexColor("#F3F4F6")
        self.border_color = colors.HexColor("#E5E7EB")

    def _get_styles(self, accent):
        styles = getSampleStyleSheet()

        styles.add(ParagraphStyle(
            name='DocTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=accent,
            alignment=TA_RIGHT,
            spaceAfter=6*mm,
        ))
        styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=styles['Heading2'],
            fontSize=12,
            textColor=accent,
            spaceBefore=4*mm,
            spaceAfter=2*mm,
        ))
        styles.add(ParagraphStyle(
            name='NormalText',
            parent=styles['Normal'],
            fontSize=10,
        ))
        styles.add(ParagraphStyle(
            name='SmallText',
            parent=styles['Normal'],
            fontSize=8,
            textColor=self.gray_color,
        ))
        styles.add(ParagraphStyle(
            name='RightAlign',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_RIGHT,
        ))
        styles.add(ParagraphStyle(
            name='Bold',
            parent=styles['Normal'],
            fontSize=10,
            fontName='Helvetica-Bold',
        ))
        return styles

    @staticmethod
    def format_currency(amount: Decimal, currency: str = "USD") -> str:
        symbol = CURRENCY_SYMBOLS.get(currency)
        if symbol:
            return f"{symbol}{amount:,.2f}"
        return f"{amount:,.2f} {currency}"

    @staticmethod
    def format_date(d: date) -> str:
        return d.strftime("%B %d, %Y")

    def _header(self, owner: User, title: str, number: str, date_rows: list[tuple[str, date]], styles):
        left = [Paragraph(f"<b>{escape(owner.display_name)}</b>", styles['Bold'])]
        if owner.company_address:
            left.append(Paragraph(escape(owner.company_address), styles['SmallText']))
        if owner.company_phone:
            left.append(Paragraph(f"Phone: {escape(owner.company_phone)}", styles['SmallText']))
        left.append(Paragraph(f"Email: {escape(owner.email)}", styles['SmallText']))

        right = [
            Paragraph(f"<b>{title}</b>", styles['DocTitle']),
            Paragraph(f"# {escape(number)}", styles['RightAlign']),
        ]
        for label, value in date_rows:
            right.append(Paragraph(f"{label}: {self.format_date(value)}", styles['RightAlign']))

        cells = [[left, right]]
        logo = self._logo(owner)
        if logo is not None:
            cells.insert(0, [logo, ""])

        table = Table(cells, colWidths=[95*mm, 75*mm])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return table

    def _logo(self, owner: User):
        # ReportLab cannot draw SVG or WebP logos
        if not owner.logo_url or not owner.logo_url.endswith((".png", ".jpg")):
            return None
        path = Path(owner.logo_url)
        if not path.exists():
            return None
        return Image(str(path), width=40*mm, height=20*mm, kind="proportional")

    def _client_block(self, client, styles):
        lines = [f"<b>{escape(client.name)}</b>"]
        for value in (client.company_name, client.address, client.email, client.phone):
            if value:
                lines.append(escape(value))
        if client.vat_number:
            lines.append(f"VAT: {escape(client.vat_number)}")
        return Paragraph("<br/>".join(lines), styles['NormalText'])

    def _items_table(self, line_items, currency: str, accent, styles):
        rows = [[
            Paragraph("<b>Description</b>", styles['Bold']),
            Paragraph("<b>Qty</b>", styles['Bold']),
            Paragraph("<b>Rate</b>", styles['Bold']),
            Paragraph("<b>Amount</b>", styles['Bold']),
        ]]
        for item in line_items:
            rows.append([
                Paragraph(escape(item.description), styles['NormalText']),
                Paragraph(f"{item.quantity:g}", styles['RightAlign']),
                Paragraph(self.format_currency(item.rate, currency), styles['RightAlign']),
                Paragraph(self.format_currency(item.amount, currency), styles['RightAlign']),
            ])

        table = Table(rows, colWidths=[85*mm, 20*mm, 32*mm, 33*mm], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), accent),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3*mm),
            ('TOPPADDING', (0, 0), (-1, -1), 3*mm),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LINEBELOW', (0, 1), (-1, -1), 0.5, self.border_color),
            *[('BACKGROUND', (0, i), (-1, i), self.light_gray)
              for i in range(2, len(rows), 2)],
        ]))
        return table

    def _totals_table(self, doc, extra_rows: list[tuple[str, str]], accent):
        currency = doc.currency
        rows = [("Subtotal", self.format_currency(doc.subtotal, currency))]
        if doc.discount_amount > 0:
            rows.append(("Discount", f"-{self.format_currency(doc.discount_amount, currency)}"))
        if doc.tax_amount > 0:
            rows.append((f"Tax ({doc.tax_rate:g}%)", self.format_currency(doc.tax_amount, currency)))
        rows.append(("Total", self.format_currency(doc.total, currency)))
        rows.extend(extra_rows)

        table = Table(rows, colWidths=[130*mm, 40*mm])
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('LINEABOVE', (0, -1), (-1, -1), 1, accent),
            ('BACKGROUND', (0, -1), (-1, -1), self.light_gray),
        ]))
        return table

    def _render(self, filepath: Path, elements: list) -> None:
        doc = SimpleDocTemplate(
            str(filepath),
            pagesize=A4,
            rightMargin=20*mm,
            leftMargin=20*mm,
            topMargin=20*mm,
            bottomMargin=20*mm,
        )
        doc.build(elements)

    def _invoice_elements(self, invoice: Invoice, owner: User) -> list:
        accent = self.primary_color
        styles = self._get_styles(accent)
        currency = invoice.currency

        elements = [
            self._header(
                owner,
                "INVOICE",
                invoice.invoice_number,
                [("Issued", invoice.issue_date), ("Due", invoice.due_date)],
                styles,
            ),
            Spacer(1, 10*mm),
            Paragraph("BILL TO", styles['SectionHeader']),
            self._client_block(invoice.client, styles),
            Spacer(1, 8*mm),
            self._items_table(invoice.line_items, currency, accent, styles),
            Spacer(1, 6*mm),
        ]

        extra = []
        if invoice.amount_paid > 0:
            extra.append(("Paid", f"-{self.format_currency(invoice.amount_paid, currency)}"))
            extra.append(("Balance due", self.format_currency(invoice.balance_due, currency)))
        elements.append(self._totals_table(invoice, extra, accent))

        if invoice.notes:
            elements.append(Paragraph("NOTES", styles['SectionHeader']))
            elements.append(Paragraph(escape(invoice.notes), styles['NormalText']))
        if invoice.payment_terms:
            elements.append(Paragraph("PAYMENT TERMS", styles['SectionHeader']))
            elements.append(Paragraph(escape(invoice.payment_terms), styles['SmallText']))

        elements.append(Spacer(1, 10*mm))
        elements.append(Paragraph(f"<i>Generated by {settings.APP_NAME}</i>", styles['SmallText']))
        return elements

    def _estimate_elements(self, estimate: Estimate, owner: User) -> list:
        accent = self.estimate_color
        styles = self._get_styles(accent)

        elements = [
            self._header(
                owner,
                "ESTIMATE",
                estimate.estimate_number,
                [("Issued", estimate.issue_date), ("Valid until", estimate.valid_until)],
                styles,
            ),
            Spacer(1, 10*mm),
        ]
        if estimate.title:
            elements.append(Paragraph(escape(estimate.title), styles['Heading3']))
        elements += [
            Paragraph("PREPARED FOR", styles['SectionHeader']),
            self._client_block(estimate.client, styles),
            Spacer(1, 8*mm),
            self._items_table(estimate.line_items, estimate.currency, accent, styles),
            Spacer(1, 6*mm),
            self._totals_table(estimate, [], accent),
        ]
        if estimate.notes:
            elements.append(Paragraph("NOTES", styles['SectionHeader']))
            elements.append(Paragraph(escape(estimate.notes), styles['NormalText']))
        if estimate.terms:
            elements.append(Paragraph("TERMS", styles['SectionHeader']))
            elements.append(Paragraph(escape(estimate.terms), styles['SmallText']))
        return elements

    async def generate_invoice_pdf(self, invoice: Invoice, owner: User) -> str:
        """
        Generate the PDF for an invoice.

        Returns:
            Path to generated PDF file
        """
        filepath = self.storage_path / f"invoice_{owner.id}_{invoice.invoice_number}.pdf"
        elements = self._invoice_elements(invoice, owner)
        await run_in_threadpool(self._render, filepath, elements)
        logger.info(f"Generated PDF {filepath.name}")
        return str(filepath)

    async def generate_estimate_pdf(self, estimate: Estimate, owner: User) -> str:
        """Generate the PDF for an estimate and return its path."""
        filepath = self.storage_path / f"estimate_{owner.id}_{estimate.estimate_number}.pdf"
        elements = self._estimate_elements(estimate, owner)
        await run_in_threadpool(self._render, filepath, elements)
        logger.info(f"Generated PDF {filepath.name}")
        return str(filepath)
