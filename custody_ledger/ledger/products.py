# custody_ledger/ledger/products.py

from custody_ledger.extensions import db
from custody_ledger.models import Product
from custody_ledger.ledger.errors import LedgerError, Result

PRODUCT_FIELDS = (
    'name',
    'batch_number',
    'manufacturer_name',
    'quantity',
    'mfg_date',
    'expiry_date',
    'category',
)


class ProductRegistry:
    """Registered products of one ledger, keyed by sequential id."""

    def __init__(self, ledger, session=None):
        self.ledger = ledger
        self.session = session or db.session

    def register(self, manufacturer, fields, now):
        """Store a new product held by its manufacturer.

        Authorization is the caller's job; this always assigns the next id.

        Args:
            manufacturer: identity of the registering party
            fields: mapping with the descriptive ``PRODUCT_FIELDS``
            now: creation timestamp in milliseconds

        Returns:
            int: the assigned product id
        """
        product_id = self.ledger.next_product_id
        product = Product(
            ledger_id=self.ledger.id,
            product_id=product_id,
            manufacturer=manufacturer,
            current_holder=manufacturer,
            is_authentic=True,
            created_at=now,
            **{key: fields[key] for key in PRODUCT_FIELDS if key in fields}
        )
        self.session.add(product)
        self.ledger.next_product_id = product_id + 1
        return product_id

    def get(self, product_id):
        return self.session.query(Product).filter_by(
            ledger_id=self.ledger.id,
            product_id=product_id
        ).first()

    def set_holder(self, product_id, new_holder):
        product = self.get(product_id)
        if product is None:
            return Result.failure(LedgerError.PRODUCT_NOT_FOUND)
        product.current_holder = new_holder
        return Result.success(product)

    def list_by_manufacturer(self, manufacturer):
        # Served by ix_product_ledger_manufacturer
        rows = self.session.query(Product.product_id).filter_by(
            ledger_id=self.ledger.id,
            manufacturer=manufacturer
        ).order_by(Product.product_id).all()
        return [row.product_id for row in rows]

    def exists_batch(self, batch_number, manufacturer):
        query = self.session.query(Product.pk).filter_by(
            ledger_id=self.ledger.id,
            batch_number=batch_number,
            manufacturer=manufacturer
        )
        return self.session.query(query.exists()).scalar()
