"""
Receipt service: PDF payment receipts with an embedded verification QR code.

The QR code encodes a link to GET /api/payment/verify-qr whose `data`
parameter carries the receipt fields as a URL-encoded query string. The page
decodes it client-side, so nothing is looked up when a receipt is scanned.

Layout (A4):
  PAYMENT RECEIPT / separator / system name
  [ details table (70%) | QR column (30%) ]
  separator / thank-you line / generation timestamp
"""
import io
import logging
from datetime import datetime
from html import escape
from urllib.parse import urlencode, quote_plus

import qrcode
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image

from app.config import settings
from app.schemas.payment import ReceiptData

logger = logging.getLogger(__name__)

QR_DISPLAY_SIZE = 120  # points
SEPARATOR = "_" * 50


def format_amount(amount) -> str:
    return f"{float(amount or 0):.2f}"


def build_qr_data(receipt: ReceiptData) -> str:
    """
    Full verification URL for the QR code. Missing fields get the same
    placeholders the receipt page knows how to display.
    """
    fields = [
        ("txn", receipt.transaction_id or "UNKNOWN"),
        ("pid", str(receipt.payment_id) if receipt.payment_id is not None else "N/A"),
        ("amt", format_amount(receipt.amount)),
        ("cur", receipt.currency or "INR"),
        ("status", receipt.payment_status or "PENDING"),
        ("date", receipt.payment_date or "N/A"),
        ("user", receipt.user_name or "UNKNOWN"),
        ("email", receipt.user_email or "N/A"),
        ("desc", receipt.description or "Payment Receipt"),
    ]
    data_param = quote_plus(urlencode(fields))
    return f"{settings.public_base_url.rstrip('/')}/api/payment/verify-qr?data={data_param}"


def generate_qr_png(data: str, box_size: int = 6) -> bytes:
    """Encode `data` as a QR code and return PNG bytes."""
    if not data:
        raise ValueError("QR data cannot be null or empty")

    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def _styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("ReceiptTitle", parent=base["Title"], fontName="Helvetica-Bold",
                                fontSize=22, alignment=TA_CENTER, spaceBefore=10, spaceAfter=5),
        "center": ParagraphStyle("ReceiptCenter", parent=base["Normal"], alignment=TA_CENTER, spaceAfter=10),
        "company": ParagraphStyle("ReceiptCompany", parent=base["Normal"], fontName="Helvetica-Bold",
                                  fontSize=12, alignment=TA_CENTER, spaceAfter=10),
        "label": ParagraphStyle("ReceiptLabel", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=10),
        "value": ParagraphStyle("ReceiptValue", parent=base["Normal"], fontName="Helvetica", fontSize=10),
        "qr_label": ParagraphStyle("QrLabel", parent=base["Normal"], fontName="Helvetica-Bold",
                                   fontSize=11, alignment=TA_CENTER),
        "qr_hint": ParagraphStyle("QrHint", parent=base["Normal"], fontSize=8, alignment=TA_CENTER),
        "footer": ParagraphStyle("ReceiptFooter", parent=base["Normal"], fontName="Helvetica-Bold",
                                 fontSize=11, alignment=TA_CENTER, spaceAfter=5),
        "footer_date": ParagraphStyle("ReceiptFooterDate", parent=base["Normal"], fontSize=9,
                                      alignment=TA_CENTER),
    }


def _details_table(receipt: ReceiptData, styles: dict, width: float) -> Table:
    rows = [
        ("Transaction ID:", receipt.transaction_id),
        ("Payment ID:", str(receipt.payment_id) if receipt.payment_id is not None else None),
        ("User Name:", receipt.user_name),
        ("User Email:", receipt.user_email),
        ("Amount:", f"{format_amount(receipt.amount)} {receipt.currency or 'INR'}"),
        ("Status:", receipt.payment_status or "PENDING"),
        ("Date:", receipt.payment_date),
        ("Description:", receipt.description),
    ]
    data = [
        [Paragraph(label, styles["label"]), Paragraph(escape(value or "N/A"), styles["value"])]
        for label, value in rows
    ]
    table = Table(data, colWidths=[width * 0.4, width * 0.6])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), colors.Color(220 / 255, 220 / 255, 220 / 255)),
        ("BACKGROUND", (1, 0), (1, -1), colors.white),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.Color(200 / 255, 200 / 255, 200 / 255)),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    return table


def _qr_column(receipt: ReceiptData, styles: dict) -> Table:
    """QR label, image and scan hint. A failed encode yields a placeholder cell."""
    try:
        png = generate_qr_png(build_qr_data(receipt))
        image = Image(io.BytesIO(png), width=QR_DISPLAY_SIZE, height=QR_DISPLAY_SIZE)
    except Exception as exc:
        logger.error("QR code generation failed for %s: %s", receipt.transaction_id, exc)
        failure = Table([[Paragraph("QR Code<br/>Generation<br/>Failed", styles["qr_label"])]])
        failure.setStyle(TableStyle([("BOX", (0, 0), (-1, -1), 0.5, colors.black),
                                     ("VALIGN", (0, 0), (-1, -1), "MIDDLE")]))
        return failure

    column = Table([
        [Paragraph("QR Code", styles["qr_label"])],
        [image],
        [Paragraph("Scan for verification", styles["qr_hint"])],
    ])
    column.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("BOX", (0, 1), (0, 1), 0.5, colors.black),
        ("BACKGROUND", (0, 1), (0, 1), colors.white),
        ("LEFTPADDING", (0, 1), (0, 1), 8),
        ("RIGHTPADDING", (0, 1), (0, 1), 8),
        ("TOPPADDING", (0, 1), (0, 1), 8),
        ("BOTTOMPADDING", (0, 1), (0, 1), 8),
    ]))
    return column


def generate_payment_pdf(receipt: ReceiptData) -> bytes:
    """Render the A4 receipt and return the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=50,
        rightMargin=50,
        topMargin=50,
        bottomMargin=50,
        title=f"Payment Receipt {receipt.transaction_id or ''}".strip(),
        author=settings.app_name,
    )
    styles = _styles()

    left_width = doc.width * 0.7
    body = Table(
        [[_details_table(receipt, styles, left_width - 20), _qr_column(receipt, styles)]],
        colWidths=[left_width, doc.width * 0.3],
    )
    body.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOX", (0, 0), (0, 0), 0.5, colors.lightgrey),
        ("BACKGROUND", (0, 0), (0, 0), colors.Color(245 / 255, 245 / 255, 245 / 255)),
        ("LEFTPADDING", (0, 0), (0, 0), 10),
        ("RIGHTPADDING", (0, 0), (0, 0), 10),
        ("TOPPADDING", (0, 0), (0, 0), 10),
        ("BOTTOMPADDING", (0, 0), (0, 0), 10),
    ]))

    story = [
        Paragraph("PAYMENT RECEIPT", styles["title"]),
        Paragraph(SEPARATOR, styles["center"]),
        Paragraph(f"{settings.app_name} Payment System", styles["company"]),
        body,
        Spacer(1, 12),
        Paragraph(SEPARATOR, styles["center"]),
        Paragraph("Thank you for your payment!", styles["footer"]),
        Paragraph(f"Generated on: {datetime.now():%Y-%m-%d %H:%M:%S}", styles["footer_date"]),
    ]
    doc.build(story)

    pdf = buffer.getvalue()
    logger.debug("Receipt PDF generated for %s (%d bytes)", receipt.transaction_id, len(pdf))
    return pdf
