from __future__ import annotations

import logging
import math
from datetime import date
from io import BytesIO
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from refi_agent.calculator import LoanScenario, SavingsResult
from refi_agent.formatting import SIGN_POSITIVE, classify_savings, format_currency, format_percent


logger = logging.getLogger(__name__)

FONT_NAME = "Helvetica"
FONT_NAME_BOLD = "Helvetica-Bold"

PALETTE = {
    "primary_text": "#1E293B",
    "secondary_text": "#64748B",
    "positive": "#10B981",
    "negative": "#EF4444",
    "highlight_bg": "#F1F5F9",
    "border": "#E2E8F0",
    "dark_header": "#0F172A",
}


def _savings_color(value: Optional[float]) -> str:
    # green only for a strictly positive saving, same rule as the on-screen figure
    return PALETTE["positive"] if classify_savings(value) == SIGN_POSITIVE else PALETTE["negative"]


def _cell_number(value: float) -> Optional[float]:
    # spreadsheets have no NaN/inf; leave those cells empty
    if value is None or not math.isfinite(value):
        return None
    return round(value, 2)


def _fmt_term(term_years: float) -> str:
    if not math.isfinite(term_years):
        return "-"
    return f"{term_years:g} years"


def scenario_to_xlsx(current: LoanScenario, refinanced: LoanScenario, result: SavingsResult) -> bytes:
    """Side-by-side comparison of the two loans as an Excel workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Refinance"

    ws.append([None, "Current loan", "Refinanced loan"])
    rows: List[list] = [
        ["Loan amount ($)", _cell_number(current.principal), _cell_number(refinanced.principal)],
        ["Interest rate (%)", _cell_number(current.annual_rate), _cell_number(refinanced.annual_rate)],
        ["Term (years)", _cell_number(current.term_years), _cell_number(refinanced.term_years)],
        ["Monthly payment ($)", _cell_number(result.current_payment), _cell_number(result.new_payment)],
    ]
    for row in rows:
        ws.append(row)
    ws.append([])
    ws.append(["Projected monthly savings ($)", _cell_number(result.monthly_savings)])

    header_font = Font(bold=True, name="Arial", size=11, color="FFFFFF")
    body_font = Font(name="Arial", size=10)
    label_font = Font(bold=True, name="Arial", size=10)
    header_fill = PatternFill("solid", fgColor=PALETTE["dark_header"].lstrip("#"))
    alt_fill = PatternFill("solid", fgColor="F8FAFC")
    border = Border(bottom=Side(style="thin", color=PALETTE["border"].lstrip("#")))
    align_right = Alignment(horizontal="right")
    align_left = Alignment(horizontal="left")

    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    for idx in range(2, 2 + len(rows)):
        for col_idx in range(1, 4):
            cell = ws.cell(row=idx, column=col_idx)
            cell.font = label_font if col_idx == 1 else body_font
            cell.alignment = align_left if col_idx == 1 else align_right
            if col_idx > 1:
                cell.number_format = "#,##0.00"
            if idx % 2 == 0:
                cell.fill = alt_fill
            cell.border = border

    savings_row = ws.max_row
    ws.cell(row=savings_row, column=1).font = label_font
    savings_cell = ws.cell(row=savings_row, column=2)
    savings_cell.number_format = "#,##0.00"
    savings_cell.alignment = align_right
    # savings > 0 green, otherwise red
    savings_cell.font = Font(bold=True, name="Arial", size=11, color=_savings_color(result.monthly_savings).lstrip("#"))

    widths = [30, 18, 18]
    for i, w in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = w

    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf.getvalue()


class Divider(Flowable):
    """A thin horizontal rule."""

    def __init__(self, width, height=0):
        super().__init__()
        self.width = width
        self.height = height

    def draw(self):
        self.canv.setStrokeColor(colors.HexColor(PALETTE["border"]))
        self.canv.setLineWidth(0.4)
        self.canv.line(0, self.height, self.width, self.height)


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont(FONT_NAME, 8)
    canvas.setFillColor(colors.HexColor(PALETTE["secondary_text"]))
    canvas.drawString(doc.leftMargin, 10 * mm, f"Generated {date.today().strftime('%Y-%m-%d')}")
    canvas.drawRightString(doc.width + doc.leftMargin, 10 * mm, f"Page {doc.page}")
    canvas.restoreState()


def generate_pdf(*, current: LoanScenario, refinanced: LoanScenario, result: SavingsResult) -> bytes:
    """Render the comparison as a one-page PDF and return its bytes."""
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        "refi_title",
        parent=styles["Title"],
        fontName=FONT_NAME_BOLD,
        fontSize=22,
        leading=28,
        textColor=colors.HexColor(PALETTE["primary_text"]),
        spaceAfter=8,
    )
    meta_style = ParagraphStyle(
        "refi_meta",
        parent=styles["BodyText"],
        fontName=FONT_NAME,
        fontSize=9.5,
        leading=14,
        textColor=colors.HexColor(PALETTE["secondary_text"]),
    )
    caption_style = ParagraphStyle(
        "refi_caption",
        parent=styles["BodyText"],
        fontName=FONT_NAME,
        fontSize=11,
        alignment=1,
    )
    savings_style = ParagraphStyle(
        "refi_savings",
        parent=styles["Title"],
        fontName=FONT_NAME_BOLD,
        fontSize=36,
        leading=44,
        textColor=colors.HexColor(_savings_color(result.monthly_savings)),
        alignment=1,
        spaceBefore=6,
        spaceAfter=6,
    )

    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=LETTER,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=24 * mm,
        bottomMargin=22 * mm,
        title="Mortgage Refinance Calculator",
        author="refi-agent",
    )

    story = []
    story.append(Paragraph("Mortgage Refinance Calculator", title_style))
    story.append(Paragraph(f"Report date: {date.today().strftime('%Y-%m-%d')}", meta_style))
    story.append(Divider(doc.width))
    story.append(Spacer(1, 6 * mm))

    table_data = [
        ["", "Current loan", "Refinanced loan"],
        ["Loan amount", f"${format_currency(current.principal)}", f"${format_currency(refinanced.principal)}"],
        ["Interest rate", format_percent(current.annual_rate), format_percent(refinanced.annual_rate)],
        ["Term", _fmt_term(current.term_years), _fmt_term(refinanced.term_years)],
        ["Monthly payment", f"${format_currency(result.current_payment)}", f"${format_currency(result.new_payment)}"],
    ]
    table = Table(table_data, colWidths=[55 * mm, 55 * mm, 55 * mm])
    table.setStyle(
        TableStyle(
            [
                ("FONT", (0, 0), (-1, -1), FONT_NAME, 10),
                ("FONT", (0, 0), (-1, 0), FONT_NAME_BOLD, 10),
                ("FONT", (0, 1), (0, -1), FONT_NAME_BOLD, 10),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(PALETTE["highlight_bg"])),
                ("TEXTCOLOR", (0, 0), (-1, -1), colors.HexColor(PALETTE["primary_text"])),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("BOX", (0, 0), (-1, -1), 0.8, colors.HexColor(PALETTE["border"])),
                ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.HexColor(PALETTE["border"])),
                ("PADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )
    story.append(table)
    story.append(Spacer(1, 10 * mm))

    story.append(Paragraph("Projected monthly savings", caption_style))
    story.append(Paragraph(f"${format_currency(result.monthly_savings)}", savings_style))
    story.append(Spacer(1, 4 * mm))
    story.append(
        Paragraph(
            "* Payments assume standard fixed-rate amortization over whole years. "
            "The two loans are compared as entered; balances and terms are not normalized.",
            meta_style,
        )
    )

    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    pdf_bytes = buf.getvalue()
    logger.info("generated refinance pdf (%d bytes)", len(pdf_bytes))
    return pdf_bytes
