# custody_ledger/ledger/transfers.py

from sqlalchemy import func

from custody_ledger.extensions import db
from custody_ledger.models import Transfer


class TransferLedger:
    """Append-only custody history per product."""

    def __init__(self, ledger, session=None):
        self.ledger = ledger
        self.session = session or db.session

    def append(self, transfer):
        """Add ``transfer`` after the last entry for its product.

        The product's sequence starts implicitly with its first transfer.
        """
        transfer.ledger_id = self.ledger.id
        transfer.sequence = self.count(transfer.product_id)
        self.session.add(transfer)
        return transfer

    def history(self, product_id):
        return self._query(product_id).order_by(Transfer.sequence).all()

    def count(self, product_id):
        return self.session.query(func.count(Transfer.id)).filter_by(
            ledger_id=self.ledger.id,
            product_id=product_id
        ).scalar() or 0

    def _query(self, product_id):
        return self.session.query(Transfer).filter_by(
            ledger_id=self.ledger.id,
            product_id=product_id
        )
