# custody_ledger/models/product.py

from custody_ledger.extensions import db
from sqlalchemy.orm import validates


class Product(db.Model):
    __tablename__ = 'product'

    # Surrogate key; the ledger-facing id is ``product_id``
    pk = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey('ledger.id'), nullable=False)
    product_id = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(200), nullable=False, default='')
    batch_number = db.Column(db.String(100), nullable=False, default='')
    manufacturer = db.Column(db.String(128), nullable=False)
    manufacturer_name = db.Column(db.String(200), nullable=False, default='')
    quantity = db.Column(db.Integer, nullable=False, default=0)
    mfg_date = db.Column(db.BigInteger, nullable=False, default=0)
    expiry_date = db.Column(db.BigInteger, nullable=False, default=0)
    category = db.Column(db.String(100), nullable=False, default='')
    current_holder = db.Column(db.String(128), nullable=False)
    is_authentic = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.BigInteger, nullable=False)

    # Optimistic concurrency check on every UPDATE
    version_id = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {'version_id_col': version_id}

    __table_args__ = (
        db.UniqueConstraint('ledger_id', 'product_id', name='unique_product_id_per_ledger'),
        db.Index('ix_product_ledger_manufacturer', 'ledger_id', 'manufacturer', 'product_id'),
        db.Index('ix_product_ledger_batch', 'ledger_id', 'batch_number'),
    )

    transfers = db.relationship(
        'Transfer',
        backref='product',
        lazy='dynamic',
        order_by='Transfer.sequence'
    )

    @validates('quantity')
    def validate_quantity(self, key, value):
        if isinstance(value, bool):
            raise ValueError("Quantity must be a whole number")
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise ValueError("Quantity must be a whole number")
        if value < 0:
            raise ValueError("Quantity cannot be negative")
        return value

    @validates('manufacturer', 'current_holder')
    def validate_identity(self, key, value):
        if not value:
            raise ValueError(f"{key} must be a valid identity")
        return value

    @property
    def id(self):
        return self.product_id

    def is_expired(self, now):
        """Informational only; expiry never blocks a transfer."""
        return self.expiry_date < now

    def to_dict(self):
        return {
            'id': self.product_id,
            'name': self.name,
            'batch_number': self.batch_number,
            'manufacturer': self.manufacturer,
            'manufacturer_name': self.manufacturer_name,
            'quantity': self.quantity,
            'mfg_date': self.mfg_date,
            'expiry_date': self.expiry_date,
            'category': self.category,
            'current_holder': self.current_holder,
            'is_authentic': self.is_authentic,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f'<Product {self.product_id} {self.batch_number}>'
