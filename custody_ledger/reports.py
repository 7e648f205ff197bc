# custody_ledger/reports.py

import io
from datetime import datetime

import pandas as pd
import pytz
from docx import Document
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

REPORT_FORMATS = {
    'xlsx': (
        "application/vnd.openxmlformats-officedocument"
        ".spreadsheetml.sheet"
    ),
    'pdf': 'application/pdf',
    'docx': (
        "application/vnd.openxmlformats-officedocument"
        ".wordprocessingml.document"
    ),
}

TRANSFER_HEADERS = ['#', 'From', 'To', 'Location', 'Timestamp', 'Verified']


def format_timestamp(millis, tz_name='UTC'):
    """Render a millisecond UTC timestamp in the given timezone.

    Args:
        millis: Milliseconds since the epoch
        tz_name: pytz timezone name

    Returns:
        str: 'YYYY-MM-DD HH:MM' in local time
    """
    tz = pytz.timezone(tz_name)
    moment = datetime.fromtimestamp(millis / 1000.0, tz=pytz.utc)
    return moment.astimezone(tz).strftime('%Y-%m-%d %H:%M')


def product_summary(product, tz_name='UTC'):
    """Ordered (label, value) pairs describing a product."""
    return [
        ('Product ID', str(product.product_id)),
        ('Name', product.name),
        ('Batch Number', product.batch_number),
        ('Category', product.category),
        ('Quantity', str(product.quantity)),
        ('Manufacturer', f"{product.manufacturer_name} ({product.manufacturer})"),
        ('Manufactured', format_timestamp(product.mfg_date, tz_name)),
        ('Expires', format_timestamp(product.expiry_date, tz_name)),
        ('Registered', format_timestamp(product.created_at, tz_name)),
        ('Current Holder', product.current_holder),
        ('Authentic', 'Yes' if product.is_authentic else 'No'),
    ]


def transfer_rows(transfers, tz_name='UTC'):
    """One dict per transfer, keyed by ``TRANSFER_HEADERS``."""
    return [
        {
            '#': index + 1,
            'From': transfer.from_identity,
            'To': transfer.to_identity,
            'Location': transfer.location,
            'Timestamp': format_timestamp(transfer.timestamp, tz_name),
            'Verified': 'Yes' if transfer.verified else 'No',
        }
        for index, transfer in enumerate(transfers)
    ]


def generate_excel(product, transfers, tz_name='UTC', title='Chain of Custody Report'):
    """Generate an Excel workbook with a product sheet and a custody sheet.

    Returns:
        BytesIO: Excel file stream
    """
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        workbook = writer.book
        workbook.set_properties({'title': f"{title} - {product.batch_number}"})
        header_format = workbook.add_format({
            'bold': True,
            'bg_color': '#4F81BD',
            'font_color': 'white',
            'border': 1
        })

        summary = pd.DataFrame(product_summary(product, tz_name), columns=['Field', 'Value'])
        history = pd.DataFrame(transfer_rows(transfers, tz_name), columns=TRANSFER_HEADERS)

        for sheet_name, df in (('Product', summary), ('Chain of Custody', history)):
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            for col_num, value in enumerate(df.columns.values):
                worksheet.write(0, col_num, value, header_format)
                lengths = df[value].astype(str).apply(len)
                max_len = max(lengths.max() if len(lengths) else 0, len(value))
                worksheet.set_column(col_num, col_num, max_len + 2)

    output.seek(0)
    return output


def generate_pdf(product, transfers, tz_name='UTC', title='Chain of Custody Report'):
    """Generate a PDF custody report.

    Returns:
        BytesIO: PDF file stream
    """
    buffer = io.BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        rightMargin=48,
        leftMargin=48,
        topMargin=48,
        bottomMargin=48
    )

    elements = []
    styles = getSampleStyleSheet()
    elements.append(Paragraph(f"{title} - {product.batch_number}", styles['Title']))
    generated = format_timestamp(datetime.now(tz=pytz.utc).timestamp() * 1000, tz_name)
    elements.append(Paragraph(f"Generated on: {generated}", styles['Normal']))
    elements.append(Spacer(1, 12))

    summary = Table([[label, value] for label, value in product_summary(product, tz_name)])
    summary.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))
    elements.append(summary)
    elements.append(Spacer(1, 18))

    table_data = [TRANSFER_HEADERS]
    for row in transfer_rows(transfers, tz_name):
        table_data.append([str(row[header]) for header in TRANSFER_HEADERS])

    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('TEXTCOLOR', (0, 1), (-1, -1), colors.black),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('LEFTPADDING', (0, 0), (-1, -1), 6),
        ('RIGHTPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(table)
    if not transfers:
        elements.append(Paragraph("No custody transfers recorded.", styles['Italic']))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_word(product, transfers, tz_name='UTC', title='Chain of Custody Report'):
    """Generate a Word custody report.

    Returns:
        BytesIO: Word document stream
    """
    doc = Document()
    doc.add_heading(f"{title} - {product.batch_number}", 0)

    for label, value in product_summary(product, tz_name):
        paragraph = doc.add_paragraph()
        paragraph.add_run(f"{label}: ").bold = True
        paragraph.add_run(value)

    doc.add_heading('Chain of Custody', level=1)
    table = doc.add_table(rows=1, cols=len(TRANSFER_HEADERS))
    table.style = 'Table Grid'
    for cell, header in zip(table.rows[0].cells, TRANSFER_HEADERS):
        cell.text = header

    for row in transfer_rows(transfers, tz_name):
        for cell, header in zip(table.add_row().cells, TRANSFER_HEADERS):
            cell.text = str(row[header])

    buffer = io.BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer


GENERATORS = {
    'xlsx': generate_excel,
    'pdf': generate_pdf,
    'docx': generate_word,
}


def build_report(fmt, product, transfers, tz_name='UTC', title='Chain of Custody Report'):
    """Dispatch to the generator for ``fmt``.

    Raises:
        ValueError: If the format is not supported
    """
    if fmt not in GENERATORS:
        raise ValueError(f"Unsupported report format: {fmt}")
    return GENERATORS[fmt](product, transfers, tz_name, title)
