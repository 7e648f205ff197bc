# custody_ledger/models/ledger.py

from custody_ledger.extensions import db


class Ledger(db.Model):
    """One independent custody ledger.

    Holds the owner identity and the product id counter. Products,
    transfers and authorizations are all scoped to a ledger row, so any
    number of ledgers can live side by side in one database.
    """
    __tablename__ = 'ledger'

    id = db.Column(db.Integer, primary_key=True)
    owner = db.Column(db.String(128), nullable=False)
    next_product_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.BigInteger, nullable=False)

    # Optimistic concurrency check on every UPDATE
    version_id = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {'version_id_col': version_id}

    products = db.relationship('Product', backref='ledger', lazy='dynamic')
    authorizations = db.relationship(
        'ManufacturerAuthorization',
        backref='ledger',
        lazy='dynamic'
    )

    def to_dict(self):
        return {
            'ledger_id': self.id,
            'owner': self.owner,
            'next_product_id': self.next_product_id,
            'created_at': self.created_at,
        }

    def __repr__(self):
        return f'<Ledger {self.id} owner={self.owner}>'
