from functools import wraps

from flask import abort, current_app

from custody_ledger.ledger import CustodyLedgerEngine


def ledger_engine(ledger_id):
    """Build an engine for ``ledger_id`` wired to the app's clock and notifier.

    Returns:
        CustodyLedgerEngine or None if the ledger does not exist
    """
    services = current_app.extensions['custody_ledger']
    return CustodyLedgerEngine.for_ledger(
        ledger_id,
        clock=services['clock'],
        notifier=services['notifier']
    )


def ledger_required(f):
    """Decorator resolving the ``ledger_id`` URL argument to an engine.

    The view receives ``engine`` instead of ``ledger_id``.

    Raises:
        404: If no ledger with that id exists
    """
    @wraps(f)
    def decorated_function(ledger_id, *args, **kwargs):
        engine = ledger_engine(ledger_id)
        if engine is None:
            abort(404, description=f'Ledger {ledger_id} not found')
        return f(engine, *args, **kwargs)
    return decorated_function
