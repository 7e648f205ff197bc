import click
from flask import current_app
from flask.cli import with_appcontext
from custody_ledger.extensions import db
from custody_ledger.ledger import CustodyError, CustodyLedgerEngine
from custody_ledger.reports import format_timestamp


def init_cli(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_ledger_command)
    app.cli.add_command(authorize_command)
    app.cli.add_command(history_command)


def _engine(ledger_id):
    services = current_app.extensions['custody_ledger']
    engine = CustodyLedgerEngine.for_ledger(
        ledger_id,
        clock=services['clock'],
        notifier=services['notifier']
    )
    if engine is None:
        raise click.ClickException(f"Ledger {ledger_id} does not exist")
    return engine


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Initialize database tables"""
    db.drop_all()
    db.create_all()
    click.echo("Database tables created fresh.")


@click.command("create-ledger")
@click.option('--owner', required=True, help='Identity that will own the ledger')
@with_appcontext
def create_ledger_command(owner):
    """Create a new custody ledger"""
    services = current_app.extensions['custody_ledger']
    engine = CustodyLedgerEngine.create_ledger(
        owner,
        clock=services['clock'],
        notifier=services['notifier']
    )
    click.echo(f"Ledger {engine.ledger.id} created for owner '{owner}'")


@click.command("authorize")
@click.option('--ledger', 'ledger_id', type=int, required=True, help='Ledger id')
@click.option('--owner', required=True, help='Owner identity issuing the change')
@click.option('--manufacturer', required=True, help='Identity to authorize')
@click.option('--revoke', is_flag=True, help='Revoke instead of grant')
@with_appcontext
def authorize_command(ledger_id, owner, manufacturer, revoke):
    """Grant or revoke manufacturer authorization"""
    engine = _engine(ledger_id)
    try:
        engine.authorize_manufacturer(owner, manufacturer, not revoke).unwrap()
    except CustodyError as e:
        raise click.ClickException(f"{e.error.value}: {e}")
    state = 'revoked' if revoke else 'granted'
    click.echo(f"Authorization {state} for '{manufacturer}' on ledger {ledger_id}")


@click.command("history")
@click.option('--ledger', 'ledger_id', type=int, required=True, help='Ledger id')
@click.argument('product_id', type=int)
@with_appcontext
def history_command(ledger_id, product_id):
    """Print the chain of custody of a product"""
    engine = _engine(ledger_id)
    product = engine.verify_product(product_id)
    if product is None:
        raise click.ClickException(f"Product {product_id} not found")

    tz_name = current_app.config['TIMEZONE']
    click.echo(f"{product.name} [{product.batch_number}] made by {product.manufacturer}")
    for index, transfer in enumerate(engine.get_transfer_history(product_id), start=1):
        click.echo(
            f"{index:>3}. {format_timestamp(transfer.timestamp, tz_name)} "
            f"{transfer.from_identity} -> {transfer.to_identity} @ {transfer.location}"
        )
    click.echo(f"Current holder: {product.current_holder}")
