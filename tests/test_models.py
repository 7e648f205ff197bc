import pytest
from sqlalchemy.exc import IntegrityError
from custody_ledger.models import Ledger, ManufacturerAuthorization, Product, Transfer
from custody_ledger.extensions import db
from tests.conftest import AMOXICILLIN, BOB, OWNER, T0


def make_product(ledger_id, product_id=1, **overrides):
    fields = dict(
        AMOXICILLIN,
        ledger_id=ledger_id,
        product_id=product_id,
        manufacturer=OWNER,
        current_holder=OWNER,
        created_at=T0
    )
    fields.update(overrides)
    return Product(**fields)


def test_product_validation(app):
    with app.app_context():
        # Test quantity validation
        with pytest.raises(ValueError, match="Quantity must be a whole number"):
            make_product(1, quantity='many')

        # Test negative quantity
        with pytest.raises(ValueError, match="Quantity cannot be negative"):
            make_product(1, quantity=-1)

        # Booleans are not quantities
        with pytest.raises(ValueError, match="Quantity must be a whole number"):
            make_product(1, quantity=True)

        # Holder must be an identity
        with pytest.raises(ValueError, match="current_holder must be a valid identity"):
            make_product(1, current_holder='')


def test_product_id_unique_per_ledger(app):
    with app.app_context():
        db.session.add(make_product(1, product_id=1))
        db.session.commit()

        db.session.add(make_product(1, product_id=1))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()


def test_same_product_id_in_two_ledgers(app):
    with app.app_context():
        other = Ledger(owner=BOB, next_product_id=1, created_at=T0)
        db.session.add(other)
        db.session.flush()

        db.session.add(make_product(1, product_id=1))
        db.session.add(make_product(other.id, product_id=1))
        db.session.commit()

        assert Product.query.filter_by(product_id=1).count() == 2


def test_product_to_dict(app):
    with app.app_context():
        product = make_product(1, product_id=7)
        product.is_authentic = True

        data = product.to_dict()
        assert data['id'] == 7
        assert data['name'] == 'Amoxicillin 500mg'
        assert data['current_holder'] == OWNER
        assert data['is_authentic'] is True
        assert set(data) == {
            'id', 'name', 'batch_number', 'manufacturer', 'manufacturer_name',
            'quantity', 'mfg_date', 'expiry_date', 'category',
            'current_holder', 'is_authentic', 'created_at'
        }


def test_product_expiry(app):
    with app.app_context():
        product = make_product(1)
        assert product.is_expired(AMOXICILLIN['expiry_date'] - 1) is False
        assert product.is_expired(AMOXICILLIN['expiry_date'] + 1) is True


def test_transfer_sequence_unique_per_product(app):
    with app.app_context():
        product = make_product(1)
        db.session.add(product)
        db.session.flush()

        for _ in range(2):
            db.session.add(Transfer(
                ledger_id=1,
                product_pk=product.pk,
                product_id=1,
                sequence=0,
                from_identity=OWNER,
                to_identity=BOB,
                timestamp=T0,
                location='Mumbai, India'
            ))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()


def test_transfer_to_dict_uses_wire_names(app):
    with app.app_context():
        transfer = Transfer(
            product_id=3,
            from_identity=OWNER,
            to_identity=BOB,
            timestamp=T0,
            location='Mumbai, India',
            verified=True
        )
        assert transfer.to_dict() == {
            'product_id': 3,
            'from': OWNER,
            'to': BOB,
            'timestamp': T0,
            'location': 'Mumbai, India',
            'verified': True,
        }


def test_default_ledger_created_at_startup(app):
    with app.app_context():
        ledger = Ledger.query.filter_by(owner=OWNER).one()
        assert ledger.next_product_id == 1
        entry = ManufacturerAuthorization.query.filter_by(
            ledger_id=ledger.id,
            identity=OWNER
        ).one()
        assert entry.authorized is True
