import os
import tempfile
import pytest
from custody_ledger import create_app
from custody_ledger.extensions import db
from custody_ledger.ledger import CustodyLedgerEngine, ManualClock
from custody_ledger.notifications import RecordingNotifier

OWNER = '5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY'
BOB = '5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty'
CAROL = '5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y'
MALLORY = '5DAAnrj7VHTznn2AWBemMuyBwZWs6FNFjdyVXUeYum3PTXFy'

# Jan 1, 2024 in milliseconds
T0 = 1704067200000

AMOXICILLIN = {
    'name': 'Amoxicillin 500mg',
    'batch_number': 'BATCH-001',
    'manufacturer_name': 'PharmaCorp Ltd',
    'quantity': 10000,
    'mfg_date': 1704067200000,
    'expiry_date': 1767225600000,
    'category': 'Antibiotic',
}


def caller(identity):
    """Headers identifying ``identity`` to the API."""
    return {'X-Caller-Identity': identity}


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    # Create a temporary file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'RATELIMIT_ENABLED': False,
        'DEFAULT_LEDGER_OWNER': OWNER,
        'TIMEZONE': 'Asia/Kolkata',
    })
    app.extensions['custody_ledger']['clock'] = ManualClock(T0)
    app.extensions['custody_ledger']['notifier'] = RecordingNotifier()

    yield app

    with app.app_context():
        db.engine.dispose()

    # Close and remove the temporary database
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def clock(app):
    return app.extensions['custody_ledger']['clock']


@pytest.fixture
def notifier(app):
    return app.extensions['custody_ledger']['notifier']


@pytest.fixture
def engine(app, clock, notifier):
    """A fresh ledger owned by OWNER, independent of the default one."""
    with app.app_context():
        yield CustodyLedgerEngine.create_ledger(OWNER, clock=clock, notifier=notifier)


@pytest.fixture
def registered(engine, clock):
    """``engine`` with one Amoxicillin batch registered by the owner."""
    product_id = engine.register_product(OWNER, **AMOXICILLIN).unwrap()
    clock.advance(1000)
    assert product_id == 1
    return engine
