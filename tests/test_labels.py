import json
from urllib.parse import parse_qs, urlsplit

import pytest
from custody_ledger.labels import (
    generate_labels_pdf,
    generate_qr_svg,
    verification_data,
    verification_url,
)
from custody_ledger.models import Product
from tests.conftest import AMOXICILLIN, OWNER, T0


def make_product(product_id, **overrides):
    fields = dict(
        AMOXICILLIN,
        ledger_id=1,
        product_id=product_id,
        manufacturer=OWNER,
        current_holder=OWNER,
        created_at=T0
    )
    fields.update(overrides)
    return Product(**fields)


def decode(url):
    parts = urlsplit(url)
    return parts, json.loads(parse_qs(parts.query)['data'][0])


def test_verification_url_embeds_label_data():
    product = make_product(3)
    parts, data = decode(verification_url('https://verify.example.org/', product, T0))

    assert parts.netloc == 'verify.example.org'
    assert parts.path == '/verify'
    assert data == {'id': 3, 'batch': 'BATCH-001', 'mfr': OWNER, 'ts': T0}
    assert data == verification_data(product, T0)


def test_verification_url_escapes_batch_number():
    product = make_product(4, batch_number='LOT 7&8')
    _, data = decode(verification_url('https://verify.example.org', product, T0))
    assert data['batch'] == 'LOT 7&8'


def test_qr_svg():
    svg = generate_qr_svg('https://verify.example.org/verify?data=x', size=128)
    assert b'<svg' in svg


@pytest.mark.parametrize('size', [10, 5000])
def test_qr_svg_size_limits(size):
    with pytest.raises(ValueError, match='QR size'):
        generate_qr_svg('https://verify.example.org', size=size)


def test_labels_pdf():
    products = [make_product(i, name=f'Amoxicillin <{i}>') for i in range(1, 5)]
    stream = generate_labels_pdf(
        [(product, verification_url('https://verify.example.org', product, T0))
         for product in products]
    )
    assert stream.getvalue().startswith(b'%PDF')
