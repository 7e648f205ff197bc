# custody_ledger/ledger/engine.py

import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from custody_ledger.extensions import db
from custody_ledger.models import Ledger, Transfer
from custody_ledger.ledger.access_control import AccessControlRegistry
from custody_ledger.ledger.clock import SystemClock
from custody_ledger.ledger.errors import ConcurrencyError, LedgerError, Result
from custody_ledger.ledger.products import ProductRegistry
from custody_ledger.ledger.transfers import TransferLedger
from custody_ledger.notifications import (
    AUTHORIZATION_CHANGED,
    CUSTODY_TRANSFERRED,
    PRODUCT_REGISTERED,
    NullNotifier,
)

logger = logging.getLogger(__name__)

_ledger_locks = {}
_ledger_locks_guard = threading.Lock()


def ledger_lock(ledger_id):
    """Process-wide write lock for one ledger."""
    with _ledger_locks_guard:
        lock = _ledger_locks.get(ledger_id)
        if lock is None:
            lock = _ledger_locks[ledger_id] = threading.RLock()
        return lock


class CustodyLedgerEngine:
    """Public operations of one custody ledger.

    Mutations run under the ledger's write lock and inside a single
    session transaction, so a product's holder and its transfer history
    always change together. Every precondition is checked before anything
    is written; a rejected call returns a failed ``Result`` and leaves the
    ledger untouched. Notifications go out only after a successful commit.
    """

    def __init__(self, ledger, session=None, clock=None, notifier=None):
        self.ledger = ledger
        self.session = session or db.session
        self.clock = clock or SystemClock()
        self.notifier = notifier or NullNotifier()
        self.access = AccessControlRegistry(ledger, self.session)
        self.products = ProductRegistry(ledger, self.session)
        self.transfers = TransferLedger(ledger, self.session)
        self._lock = ledger_lock(ledger.id)

    @classmethod
    def create_ledger(cls, owner, session=None, clock=None, notifier=None):
        """Create a new, independent ledger owned by ``owner``.

        The owner is authorized as a manufacturer from the start.
        """
        if not owner:
            raise ValueError("Ledger owner must be a valid identity")
        session = session or db.session
        clock = clock or SystemClock()
        now = clock.now()
        ledger = Ledger(owner=owner, next_product_id=1, created_at=now)
        try:
            session.add(ledger)
            session.flush()
            AccessControlRegistry(ledger, session).grant(owner, True, now)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to create ledger for %s", owner)
            raise
        logger.info("Created ledger %s owned by %s", ledger.id, owner)
        return cls(ledger, session=session, clock=clock, notifier=notifier)

    @classmethod
    def for_ledger(cls, ledger_id, session=None, clock=None, notifier=None):
        """Engine for an existing ledger, or None if there is no such ledger."""
        session = session or db.session
        ledger = session.get(Ledger, ledger_id)
        if ledger is None:
            return None
        return cls(ledger, session=session, clock=clock, notifier=notifier)

    # Mutating operations

    def register_product(self, caller, name, batch_number, manufacturer_name,
                         quantity, mfg_date, expiry_date, category):
        with self._lock:
            self._sync()
            if not self.access.is_authorized(caller):
                logger.info(
                    "Ledger %s: registration rejected for %s (not authorized)",
                    self.ledger.id, caller
                )
                return Result.failure(LedgerError.NOT_AUTHORIZED_MANUFACTURER)

            fields = {
                'name': name,
                'batch_number': batch_number,
                'manufacturer_name': manufacturer_name,
                'quantity': quantity,
                'mfg_date': mfg_date,
                'expiry_date': expiry_date,
                'category': category,
            }
            with self._transaction():
                product_id = self.products.register(caller, fields, self.clock.now())

        logger.info(
            "Ledger %s: product %s (%s) registered by %s",
            self.ledger.id, product_id, batch_number, caller
        )
        self._notify(PRODUCT_REGISTERED, {
            'product_id': product_id,
            'manufacturer': caller,
            'name': name,
            'batch_number': batch_number,
        })
        return Result.success(product_id)

    def transfer_custody(self, caller, product_id, to, location):
        with self._lock:
            self._sync()
            product, error = self._transfer_preconditions(caller, product_id)
            if error is None and not to:
                error = LedgerError.INVALID_TRANSFER
            if error is not None:
                logger.info(
                    "Ledger %s: transfer of product %s by %s rejected (%s)",
                    self.ledger.id, product_id, caller, error.value
                )
                return Result.failure(error)

            with self._transaction():
                self.products.set_holder(product_id, to)
                self.transfers.append(Transfer(
                    product_pk=product.pk,
                    product_id=product_id,
                    from_identity=caller,
                    to_identity=to,
                    timestamp=self.clock.now(),
                    location=location,
                    verified=True
                ))

        logger.info(
            "Ledger %s: product %s transferred %s -> %s at %r",
            self.ledger.id, product_id, caller, to, location
        )
        self._notify(CUSTODY_TRANSFERRED, {
            'product_id': product_id,
            'from': caller,
            'to': to,
            'location': location,
        })
        return Result.success(None)

    def authorize_manufacturer(self, caller, target, authorized):
        with self._lock:
            self._sync()
            if caller != self.ledger.owner:
                logger.info(
                    "Ledger %s: authorization change by non-owner %s rejected",
                    self.ledger.id, caller
                )
                return Result.failure(LedgerError.ONLY_OWNER)
            with self._transaction():
                result = self.access.set_authorization(
                    caller, target, authorized, self.clock.now()
                )

        logger.info(
            "Ledger %s: manufacturer %s authorized=%s",
            self.ledger.id, target, bool(authorized)
        )
        self._notify(AUTHORIZATION_CHANGED, result.value)
        return Result.success(None)

    # Read accessors

    def check_transfer(self, caller, product_id):
        """Dry run of ``transfer_custody``'s checks. Never writes."""
        with self._lock:
            _, error = self._transfer_preconditions(caller, product_id)
        return Result.failure(error) if error else Result.success(None)

    def verify_product(self, product_id):
        with self._lock:
            return self.products.get(product_id)

    def verify_products(self, product_ids):
        with self._lock:
            return {pid: self.products.get(pid) for pid in product_ids}

    def get_transfer_history(self, product_id):
        with self._lock:
            return self.transfers.history(product_id)

    def is_authorized_manufacturer(self, identity):
        return self.access.is_authorized(identity)

    def get_owner(self):
        return self.access.owner()

    def get_next_product_id(self):
        with self._lock:
            self._sync()
            return self.ledger.next_product_id

    def get_products_by_manufacturer(self, identity):
        return self.products.list_by_manufacturer(identity)

    def product_exists(self, batch_number, manufacturer):
        return self.products.exists_batch(batch_number, manufacturer)

    # Internals

    def _transfer_preconditions(self, caller, product_id):
        product = self.products.get(product_id)
        if product is None:
            return None, LedgerError.PRODUCT_NOT_FOUND
        if product.current_holder != caller:
            return product, LedgerError.NOT_CURRENT_HOLDER
        return product, None

    def _sync(self):
        # Pick up counter changes committed by other sessions
        if not self.session.new and not self.session.dirty:
            self.session.refresh(self.ledger)

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.session.commit()
        except StaleDataError:
            self.session.rollback()
            logger.warning("Ledger %s: concurrent modification detected", self.ledger.id)
            raise ConcurrencyError("Ledger was modified by another writer.")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Ledger {self.ledger.id}: database error: {str(e)}")
            raise
        except ValueError:
            self.session.rollback()
            raise

    def _notify(self, event, payload):
        try:
            self.notifier.notify(event, payload, ledger_id=self.ledger.id)
        except Exception:
            logger.exception("Ledger %s: failed to deliver %s notification", self.ledger.id, event)
