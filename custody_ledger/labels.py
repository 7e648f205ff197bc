# custody_ledger/labels.py

import io
import json
from urllib.parse import quote
from xml.sax.saxutils import escape

from reportlab.graphics import renderSVG
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

QR_MIN_SIZE = 64
QR_MAX_SIZE = 1024
LABEL_COLUMNS = 3


def verification_data(product, issued_at):
    """Compact payload printed on a product label."""
    return {
        'id': product.product_id,
        'batch': product.batch_number,
        'mfr': product.manufacturer,
        'ts': issued_at,
    }


def verification_url(base_url, product, issued_at):
    """URL a scanner opens to check the product against the ledger.

    Args:
        base_url: public origin of the verification page
        product: the product being labelled
        issued_at: label creation time in milliseconds

    Returns:
        str: ``<base_url>/verify?data=<url-encoded JSON>``
    """
    data = json.dumps(verification_data(product, issued_at), separators=(',', ':'))
    return f"{base_url.rstrip('/')}/verify?data={quote(data, safe='')}"


def qr_drawing(value, size=256, level='M'):
    """A square reportlab drawing of ``value`` as a QR code."""
    widget = QrCodeWidget(value, barLevel=level)
    x1, y1, x2, y2 = widget.getBounds()
    width, height = x2 - x1, y2 - y1
    drawing = Drawing(size, size, transform=[size / width, 0, 0, size / height, 0, 0])
    drawing.add(widget)
    return drawing


def generate_qr_svg(value, size=256):
    """Render ``value`` as an SVG QR code.

    Raises:
        ValueError: If ``size`` is outside the supported range
    """
    if not QR_MIN_SIZE <= size <= QR_MAX_SIZE:
        raise ValueError(f"QR size must be between {QR_MIN_SIZE} and {QR_MAX_SIZE}")
    return renderSVG.drawToString(qr_drawing(value, size)).encode('utf-8')


def generate_labels_pdf(labels, title='Product Labels', qr_size=110):
    """Generate a printable sheet of product labels.

    Args:
        labels: sequence of ``(product, url)`` pairs
        title: heading of the sheet
        qr_size: QR code edge in points

    Returns:
        BytesIO: PDF file stream
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=36,
        leftMargin=36,
        topMargin=36,
        bottomMargin=36,
        title=title
    )
    styles = getSampleStyleSheet()

    cells = []
    for product, url in labels:
        caption = Paragraph(
            f"<b>{escape(product.name)}</b><br/>"
            f"Batch {escape(product.batch_number)}<br/>"
            f"ID {product.product_id}<br/>"
            "Scan to verify authenticity",
            styles['Normal']
        )
        cells.append([qr_drawing(url, qr_size), caption])

    rows = [cells[i:i + LABEL_COLUMNS] for i in range(0, len(cells), LABEL_COLUMNS)]
    if rows:
        while len(rows[-1]) < LABEL_COLUMNS:
            rows[-1].append('')

    elements = [Paragraph(title, styles['Title'])]
    if rows:
        sheet = Table(rows, colWidths=[doc.width / LABEL_COLUMNS] * LABEL_COLUMNS)
        sheet.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ]))
        elements.append(sheet)

    doc.build(elements)
    buffer.seek(0)
    return buffer
