# custody_ledger/ledger/errors.py

import enum


class LedgerError(enum.Enum):
    """Rejections a ledger operation can return."""
    PRODUCT_NOT_FOUND = 'ProductNotFound'
    NOT_AUTHORIZED_MANUFACTURER = 'NotAuthorizedManufacturer'
    NOT_CURRENT_HOLDER = 'NotCurrentHolder'
    ONLY_OWNER = 'OnlyOwner'
    # Declared for clients that match on the full set; never returned
    PRODUCT_ALREADY_EXISTS = 'ProductAlreadyExists'
    # Transfer to an empty recipient identity
    INVALID_TRANSFER = 'InvalidTransfer'

    @property
    def message(self):
        return _MESSAGES[self]


_MESSAGES = {
    LedgerError.PRODUCT_NOT_FOUND: 'Product not found',
    LedgerError.NOT_AUTHORIZED_MANUFACTURER: 'Caller is not an authorized manufacturer',
    LedgerError.NOT_CURRENT_HOLDER: 'Only the current holder can transfer custody',
    LedgerError.ONLY_OWNER: 'Only the ledger owner can perform this action',
    LedgerError.PRODUCT_ALREADY_EXISTS: 'Product already exists',
    LedgerError.INVALID_TRANSFER: 'Transfer needs a recipient identity',
}


class CustodyError(Exception):
    """Raised by ``Result.unwrap`` when the result is a rejection."""

    def __init__(self, error):
        super().__init__(error.message)
        self.error = error


class ConcurrencyError(Exception):
    pass


class Result:
    """Outcome of a ledger operation: a value or a ``LedgerError``.

    Ledger operations return these instead of raising, so a rejected call
    is an ordinary value the caller can inspect.
    """
    __slots__ = ('value', 'error')

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    @classmethod
    def success(cls, value=None):
        return cls(value=value)

    @classmethod
    def failure(cls, error):
        return cls(error=error)

    @property
    def ok(self):
        return self.error is None

    def unwrap(self):
        if self.error is not None:
            raise CustodyError(self.error)
        return self.value

    def __eq__(self, other):
        if not isinstance(other, Result):
            return NotImplemented
        return self.value == other.value and self.error == other.error

    def __repr__(self):
        if self.ok:
            return f'<Result ok {self.value!r}>'
        return f'<Result error {self.error.value}>'
