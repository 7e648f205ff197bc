# custody_ledger/models/transfer.py

from custody_ledger.extensions import db


class Transfer(db.Model):
    """One custody handoff. Rows are only ever inserted."""
    __tablename__ = 'transfer'

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey('ledger.id'), nullable=False)
    product_pk = db.Column(db.Integer, db.ForeignKey('product.pk'), nullable=False)
    product_id = db.Column(db.Integer, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)
    from_identity = db.Column(db.String(128), nullable=False)
    to_identity = db.Column(db.String(128), nullable=False)
    timestamp = db.Column(db.BigInteger, nullable=False)
    location = db.Column(db.String(500), nullable=False, default='')
    verified = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        db.UniqueConstraint('product_pk', 'sequence', name='unique_sequence_per_product'),
    )

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'from': self.from_identity,
            'to': self.to_identity,
            'timestamp': self.timestamp,
            'location': self.location,
            'verified': self.verified,
        }

    def __repr__(self):
        return f'<Transfer {self.product_id}#{self.sequence} {self.from_identity}->{self.to_identity}>'
