# custody_ledger/models/authorization.py

from custody_ledger.extensions import db


class ManufacturerAuthorization(db.Model):
    """Owner-controlled flag permitting an identity to register products."""
    __tablename__ = 'manufacturer_authorization'

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey('ledger.id'), nullable=False)
    identity = db.Column(db.String(128), nullable=False)
    authorized = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(db.BigInteger)

    __table_args__ = (
        db.UniqueConstraint('ledger_id', 'identity', name='unique_identity_per_ledger'),
    )

    def __repr__(self):
        return f'<ManufacturerAuthorization {self.identity}={self.authorized}>'
