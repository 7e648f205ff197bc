# custody_ledger/ledger/access_control.py

from custody_ledger.extensions import db
from custody_ledger.models import ManufacturerAuthorization
from custody_ledger.ledger.errors import LedgerError, Result


class AccessControlRegistry:
    """Owner identity and the manufacturer authorization flags of a ledger."""

    def __init__(self, ledger, session=None):
        self.ledger = ledger
        self.session = session or db.session

    def owner(self):
        return self.ledger.owner

    def is_authorized(self, identity):
        entry = self._entry(identity)
        return bool(entry and entry.authorized)

    def set_authorization(self, caller, target, authorized, now=None):
        """Overwrite ``target``'s flag on behalf of ``caller``.

        Only the owner may do this. Setting the same value again succeeds
        and yields a fresh notification payload.

        Returns:
            Result: the authorization-change notification on success
        """
        if caller != self.ledger.owner:
            return Result.failure(LedgerError.ONLY_OWNER)
        self.grant(target, authorized, now)
        return Result.success({
            'manufacturer': target,
            'authorized': bool(authorized),
        })

    def grant(self, identity, authorized, now=None):
        """Write the flag without an owner check (ledger bootstrap only)."""
        entry = self._entry(identity)
        if entry is None:
            entry = ManufacturerAuthorization(
                ledger_id=self.ledger.id,
                identity=identity
            )
            self.session.add(entry)
        entry.authorized = bool(authorized)
        entry.updated_at = now
        return entry

    def _entry(self, identity):
        return self.session.query(ManufacturerAuthorization).filter_by(
            ledger_id=self.ledger.id,
            identity=identity
        ).first()
