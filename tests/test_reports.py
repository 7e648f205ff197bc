import zipfile

import pytest
from custody_ledger.models import Product, Transfer
from custody_ledger.reports import (
    TRANSFER_HEADERS,
    build_report,
    format_timestamp,
    product_summary,
    transfer_rows,
)
from tests.conftest import AMOXICILLIN, BOB, CAROL, OWNER, T0


@pytest.fixture
def product():
    product = Product(
        ledger_id=1,
        product_id=1,
        manufacturer=OWNER,
        current_holder=CAROL,
        created_at=T0,
        **AMOXICILLIN
    )
    product.is_authentic = True
    return product


@pytest.fixture
def transfers():
    return [
        Transfer(product_id=1, sequence=0, from_identity=OWNER, to_identity=BOB,
                 timestamp=T0 + 60000, location='Mumbai, India', verified=True),
        Transfer(product_id=1, sequence=1, from_identity=BOB, to_identity=CAROL,
                 timestamp=T0 + 120000, location='Delhi, India', verified=True),
    ]


def test_format_timestamp():
    assert format_timestamp(T0) == '2024-01-01 00:00'
    assert format_timestamp(T0, 'Asia/Kolkata') == '2024-01-01 05:30'


def test_product_summary(product):
    summary = dict(product_summary(product))
    assert summary['Product ID'] == '1'
    assert summary['Manufacturer'] == f'PharmaCorp Ltd ({OWNER})'
    assert summary['Current Holder'] == CAROL
    assert summary['Authentic'] == 'Yes'


def test_transfer_rows(transfers):
    rows = transfer_rows(transfers, 'Asia/Kolkata')
    assert [row['#'] for row in rows] == [1, 2]
    assert set(rows[0]) == set(TRANSFER_HEADERS)
    assert rows[1]['Location'] == 'Delhi, India'
    assert rows[1]['Timestamp'] == '2024-01-01 05:32'


@pytest.mark.parametrize('fmt, magic', [
    ('xlsx', b'PK'),
    ('pdf', b'%PDF'),
    ('docx', b'PK'),
])
def test_build_report(product, transfers, fmt, magic):
    stream = build_report(fmt, product, transfers, tz_name='Asia/Kolkata')
    assert stream.getvalue().startswith(magic)


def test_build_report_without_transfers(product):
    stream = build_report('pdf', product, [])
    assert stream.getvalue().startswith(b'%PDF')


def test_build_report_unsupported(product, transfers):
    with pytest.raises(ValueError, match='Unsupported report format'):
        build_report('csv', product, transfers)


def test_excel_report_carries_title(product, transfers):
    stream = build_report('xlsx', product, transfers, title='Recall Audit')
    with zipfile.ZipFile(stream) as workbook:
        core = workbook.read('docProps/core.xml').decode('utf-8')
    assert 'Recall Audit - BATCH-001' in core
