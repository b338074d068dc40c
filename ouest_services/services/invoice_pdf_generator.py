"""
Invoice PDF Generator
Renders a branded A4 invoice with an items table and totals
"""

import io
import logging
from html import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..email_templates import COMPANY_NAME, SUPPORT_EMAIL, SUPPORT_PHONE
from ..models import Invoice, User

logger = logging.getLogger(__name__)


def format_euros(amount: float) -> str:
    """1234.5 -> '1 234,50 €'"""
    return f"{amount:,.2f} €".replace(",", " ").replace(".", ",")


class InvoicePDFGenerator:
    """Generate invoice PDFs"""

    def __init__(self, invoice: Invoice, user: User):
        self.invoice = invoice
        self.user = user

        self.page_width, self.page_height = A4
        self.margin = 2 * cm
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#1e40af")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"📄 Generating invoice PDF {self.invoice.id}")
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Facture {self.invoice.id}",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "InvoiceTitle",
            parent=styles["Heading1"],
            fontSize=22,
            textColor=self.brand_color,
            spaceAfter=12,
        )
        body_style = ParagraphStyle(
            "InvoiceBody",
            parent=styles["Normal"],
            fontSize=10,
            textColor=self.dark_gray,
            spaceAfter=4,
        )

        story = [
            Paragraph(escape(COMPANY_NAME), title_style),
            Paragraph(f"{escape(SUPPORT_EMAIL)} · {escape(SUPPORT_PHONE)}", body_style),
            Spacer(1, 0.8 * cm),
        ]

        info_table = Table(self._info_rows(), colWidths=[4 * cm, self.content_width - 4 * cm])
        info_table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 10),
                    ("FONT", (1, 0), (1, -1), "Helvetica", 10),
                    ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(info_table)
        story.append(Spacer(1, 0.8 * cm))

        items_table = Table(
            self._item_rows(),
            colWidths=[self.content_width - 8 * cm, 2 * cm, 3 * cm, 3 * cm],
            repeatRows=1,
        )
        items_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
                    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -2), [colors.white, self.light_gray]),
                    ("FONT", (0, -1), (-1, -1), "Helvetica-Bold", 10),
                    ("LINEABOVE", (0, -1), (-1, -1), 1, self.dark_gray),
                    ("GRID", (0, 0), (-1, -2), 0.5, colors.grey),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(items_table)
        story.append(Spacer(1, 1.2 * cm))
        story.append(
            Paragraph(
                "<i>Merci pour votre confiance.</i>",
                ParagraphStyle("Footer", parent=body_style, fontSize=8, textColor=colors.grey, alignment=1),
            )
        )

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)
        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated invoice PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _info_rows(self) -> list[list[str]]:
        created = self.invoice.created_at.strftime("%d/%m/%Y") if self.invoice.created_at else ""
        due = self.invoice.due_date.strftime("%d/%m/%Y") if self.invoice.due_date else "À réception"
        rows = [
            ["Facture n°", self.invoice.id],
            ["Date", created],
            ["Échéance", due],
            ["Client", self.user.name],
            ["Email", self.user.email],
        ]
        if self.user.company:
            rows.append(["Société", self.user.company])
        return rows

    def _item_rows(self) -> list[list[str]]:
        rows = [["Description", "Qté", "Prix unitaire", "Total"]]
        for item in self.invoice.items or []:
            quantity = item.get("quantity", 1)
            unit_price = item.get("unitPrice", 0)
            rows.append(
                [
                    item.get("description", ""),
                    str(quantity),
                    format_euros(unit_price),
                    format_euros(quantity * unit_price),
                ]
            )
        rows.append(["Total", "", "", format_euros(self.invoice.amount)])
        return rows

    def _add_page_number(self, canvas_obj, doc):
        canvas_obj.setFont("Helvetica", 9)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawRightString(
            self.page_width - self.margin, self.margin / 2, f"Page {canvas_obj.getPageNumber()}"
        )


def generate_invoice_pdf(invoice: Invoice, user: User) -> bytes:
    return InvoicePDFGenerator(invoice, user).generate()
