"""
Render the affiliate partnership agreement PDF.
Layout: title in dark green, two-column label/value rows, numbered terms, footer with page numbers.
"""
import io
import textwrap
from datetime import datetime
from typing import Any, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

BRAND_GREEN = colors.HexColor("#297D2D")
BRAND_BLACK = colors.HexColor("#1a1a1a")
BRAND_GREY = colors.HexColor("#4a4a4a")

FOOTER_Y = 30
FOOTER_MARGIN = 55  # Min y for content

LINE_HEIGHT_FIELD = 16
LINE_HEIGHT_SECTION = 10
LINE_HEIGHT_TEXT = 11

LABEL_COL = 40
VALUE_COL = 200


def _val(s: Optional[Any]) -> str:
    """Return value or placeholder."""
    return str(s).strip() if s not in (None, "") else "—"


def _format_date(d: Optional[datetime]) -> str:
    return d.strftime("%d %B %Y") if d else "—"


def _draw_header(c: canvas.Canvas, title: str) -> None:
    c.setFont("Helvetica-Bold", 16)
    c.setFillColor(BRAND_GREEN)
    c.drawString(LABEL_COL, A4[1] - 60, title)


def _draw_footer(c: canvas.Canvas, page_num: int) -> None:
    c.setFont("Helvetica", 8)
    c.setFillColor(BRAND_GREY)
    c.drawString(LABEL_COL, FOOTER_Y, "Generated by the marketplace platform.")
    c.drawRightString(A4[0] - 40, FOOTER_Y, f"Page {page_num}")


def _section_title(c: canvas.Canvas, y: float, text: str) -> float:
    c.setFont("Helvetica-Bold", 11)
    c.setFillColor(BRAND_GREEN)
    c.drawString(LABEL_COL, y, text)
    return y - LINE_HEIGHT_SECTION - LINE_HEIGHT_FIELD


def _field_line(c: canvas.Canvas, y: float, label: str, value: str) -> float:
    """Draw label in col 1, value in col 2."""
    c.setFont("Helvetica", 9)
    c.setFillColor(BRAND_GREY)
    c.drawString(LABEL_COL, y, f"{label}:")
    c.setFillColor(BRAND_BLACK)
    c.drawString(VALUE_COL, y, value[:80])
    return y - LINE_HEIGHT_FIELD


def render_partnership_agreement(agreement: dict) -> bytes:
    """
    Render the structured agreement returned by PartnershipManager.agreement().
    Returns the PDF as bytes.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(agreement["title"])
    height = A4[1]
    y = height - 100
    page_num = 1

    def maybe_new_page():
        nonlocal y, page_num
        if y < FOOTER_MARGIN + 40:
            _draw_footer(c, page_num)
            c.showPage()
            page_num += 1
            _draw_header(c, agreement["title"])
            y = height - 100

    _draw_header(c, agreement["title"])

    y = _section_title(c, y, "Agreement")
    y = _field_line(c, y, "Reference", _val(agreement["request_id"]))
    y = _field_line(c, y, "Status", _val(agreement["status"]).capitalize())
    y = _field_line(c, y, "Effective Date", _format_date(agreement.get("effective_date")))
    y -= 12

    seller = agreement["seller"]
    y = _section_title(c, y, "Seller")
    y = _field_line(c, y, "Name", _val(seller.get("name")))
    y = _field_line(c, y, "Account ID", _val(seller.get("id")))
    y -= 12

    affiliate = agreement["affiliate"]
    y = _section_title(c, y, "Affiliate")
    y = _field_line(c, y, "Name", _val(affiliate.get("name")))
    y = _field_line(c, y, "Account ID", _val(affiliate.get("id")))
    y = _field_line(c, y, "Affiliate Code", _val(affiliate.get("affiliate_code")))
    y -= 12

    y = _section_title(c, y, "Terms")
    c.setFont("Helvetica", 9)
    c.setFillColor(BRAND_BLACK)
    for i, term in enumerate(agreement["terms"], start=1):
        lines = textwrap.wrap(term, width=90) or [""]
        for j, line in enumerate(lines):
            maybe_new_page()
            c.setFont("Helvetica", 9)
            c.setFillColor(BRAND_BLACK)
            prefix = f"{i}. " if j == 0 else "    "
            c.drawString(LABEL_COL, y, prefix + line)
            y -= LINE_HEIGHT_TEXT
        y -= 4

    _draw_footer(c, page_num)
    c.save()
    return buffer.getvalue()
