# custody_ledger/api/routes.py

from flask import Response, current_app, jsonify, request
from flask_login import current_user, login_required

from custody_ledger.api import bp
from custody_ledger.api.forms import AuthorizationForm, ProductForm, TransferForm, form_errors
from custody_ledger.auth.decorators import ledger_required
from custody_ledger.extensions import limiter
from custody_ledger.ledger import CustodyError, CustodyLedgerEngine, LedgerError
from custody_ledger.labels import generate_labels_pdf, generate_qr_svg, verification_url
from custody_ledger.reports import REPORT_FORMATS, build_report, format_timestamp

ERROR_STATUS = {
    LedgerError.PRODUCT_NOT_FOUND: 404,
    LedgerError.NOT_AUTHORIZED_MANUFACTURER: 403,
    LedgerError.NOT_CURRENT_HOLDER: 403,
    LedgerError.ONLY_OWNER: 403,
    LedgerError.PRODUCT_ALREADY_EXISTS: 409,
    LedgerError.INVALID_TRANSFER: 422,
}

MAX_BATCH_VERIFY = 100


def rejection(error):
    """JSON response for a rejected ledger operation."""
    return jsonify({
        'error': error.value,
        'message': error.message
    }), ERROR_STATUS[error]


def invalid(errors):
    return jsonify({'error': 'ValidationError', 'fields': errors}), 400


def product_id_list(payload):
    """Validated ``product_ids`` from a JSON body, or a dict of field errors."""
    product_ids = payload.get('product_ids') if isinstance(payload, dict) else None
    if (not isinstance(product_ids, list)
            or not all(isinstance(pid, int) and not isinstance(pid, bool) for pid in product_ids)):
        return None, {'product_ids': ['Must be a list of integer product ids']}
    if len(product_ids) > MAX_BATCH_VERIFY:
        return None, {'product_ids': [f'At most {MAX_BATCH_VERIFY} ids per request']}
    return product_ids, None


def verify_base_url():
    return current_app.config.get('VERIFY_BASE_URL') or request.host_url


@bp.app_errorhandler(CustodyError)
def handle_custody_error(error):
    return rejection(error.error)


#######################################################################
#  LEDGERS
#######################################################################

@bp.route('/ledgers', methods=['POST'])
@login_required
@limiter.limit("10 per hour")
def create_ledger():
    """Create a ledger owned by the caller."""
    services = current_app.extensions['custody_ledger']
    engine = CustodyLedgerEngine.create_ledger(
        current_user.identity,
        clock=services['clock'],
        notifier=services['notifier']
    )
    return jsonify({
        'ledger_id': engine.ledger.id,
        'owner': engine.get_owner()
    }), 201


@bp.route('/ledgers/<int:ledger_id>')
@ledger_required
def ledger_info(engine):
    return jsonify({
        'ledger_id': engine.ledger.id,
        'owner': engine.get_owner(),
        'next_product_id': engine.get_next_product_id()
    })


#######################################################################
#  PRODUCTS
#######################################################################

@bp.route('/ledgers/<int:ledger_id>/products', methods=['POST'])
@login_required
@limiter.limit("120 per hour")
@ledger_required
def register_product(engine):
    """Register a product manufactured by the caller."""
    form = ProductForm()
    if not form.validate_on_submit():
        return invalid(form_errors(form))

    result = engine.register_product(
        current_user.identity,
        name=form.text('name'),
        batch_number=form.text('batch_number'),
        manufacturer_name=form.text('manufacturer_name'),
        quantity=form.quantity.data,
        mfg_date=form.mfg_date.data,
        expiry_date=form.expiry_date.data,
        category=form.text('category')
    )
    if not result.ok:
        return rejection(result.error)
    return jsonify({'product_id': result.value}), 201


@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>')
@ledger_required
def verify_product(engine, product_id):
    """Public authenticity lookup."""
    product = engine.verify_product(product_id)
    if product is None:
        return rejection(LedgerError.PRODUCT_NOT_FOUND)
    return jsonify(product.to_dict())


@bp.route('/ledgers/<int:ledger_id>/products/verify', methods=['POST'])
@limiter.limit("30 per minute")
@ledger_required
def verify_products(engine):
    """Look up several products at once; unknown ids come back as null."""
    product_ids, errors = product_id_list(request.get_json(silent=True))
    if errors:
        return invalid(errors)

    found = engine.verify_products(product_ids)
    return jsonify({
        'products': [
            {
                'product_id': pid,
                'product': found[pid].to_dict() if found[pid] is not None else None
            }
            for pid in product_ids
        ]
    })


#######################################################################
#  CUSTODY TRANSFERS
#######################################################################

@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>/transfer', methods=['POST'])
@login_required
@limiter.limit("120 per hour")
@ledger_required
def transfer_custody(engine, product_id):
    """Hand a product over from the caller to a new holder."""
    form = TransferForm()
    if not form.validate_on_submit():
        return invalid(form_errors(form))

    result = engine.transfer_custody(
        current_user.identity,
        product_id,
        form.recipient(),
        form.location.data or ''
    )
    if not result.ok:
        return rejection(result.error)
    return jsonify({
        'product_id': product_id,
        'current_holder': form.recipient()
    })


@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>/transfer/check')
@login_required
@ledger_required
def check_transfer(engine, product_id):
    """Tell the caller whether a transfer would be accepted right now."""
    result = engine.check_transfer(current_user.identity, product_id)
    if result.ok:
        return jsonify({'allowed': True})
    return jsonify({
        'allowed': False,
        'error': result.error.value,
        'message': result.error.message
    })


@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>/history')
@ledger_required
def transfer_history(engine, product_id):
    transfers = engine.get_transfer_history(product_id)
    return jsonify({
        'product_id': product_id,
        'transfers': [transfer.to_dict() for transfer in transfers]
    })


@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>/report/<fmt>')
@limiter.limit("10 per minute")
@ledger_required
def custody_report(engine, product_id, fmt):
    """Export a product's chain of custody as xlsx, pdf or docx."""
    if fmt not in REPORT_FORMATS:
        return jsonify({'error': 'UnsupportedFormat', 'message': f'Format {fmt} not supported'}), 400

    product = engine.verify_product(product_id)
    if product is None:
        return rejection(LedgerError.PRODUCT_NOT_FOUND)

    transfers = engine.get_transfer_history(product_id)
    tz_name = current_app.config['TIMEZONE']
    stream = build_report(
        fmt,
        product,
        transfers,
        tz_name=tz_name,
        title=current_app.config['REPORT_TITLE']
    )

    stamp = format_timestamp(engine.clock.now(), tz_name)\
        .replace('-', '').replace(' ', '_').replace(':', '')
    filename = f"custody_{engine.ledger.id}_{product_id}_{stamp}.{fmt}"
    return Response(
        stream.getvalue(),
        mimetype=REPORT_FORMATS[fmt],
        headers={
            "Content-Disposition": f"attachment; filename={filename}"
        }
    )


#######################################################################
#  LABELS
#######################################################################

@bp.route('/ledgers/<int:ledger_id>/products/<int:product_id>/qrcode')
@limiter.limit("60 per minute")
@ledger_required
def product_qrcode(engine, product_id):
    """SVG QR code linking to the product's verification page."""
    product = engine.verify_product(product_id)
    if product is None:
        return rejection(LedgerError.PRODUCT_NOT_FOUND)

    size = request.args.get('size', 256, type=int)
    url = verification_url(verify_base_url(), product, engine.clock.now())
    try:
        svg = generate_qr_svg(url, size)
    except ValueError as e:
        return invalid({'size': [str(e)]})
    return Response(svg, mimetype='image/svg+xml', headers={'X-Verification-URL': url})


@bp.route('/ledgers/<int:ledger_id>/labels', methods=['POST'])
@limiter.limit("10 per minute")
@ledger_required
def product_labels(engine):
    """Printable PDF sheet with one QR label per requested product."""
    product_ids, errors = product_id_list(request.get_json(silent=True))
    if errors:
        return invalid(errors)
    if not product_ids:
        return invalid({'product_ids': ['At least one product id is required']})

    found = engine.verify_products(product_ids)
    if any(product is None for product in found.values()):
        return rejection(LedgerError.PRODUCT_NOT_FOUND)

    issued_at = engine.clock.now()
    base_url = verify_base_url()
    stream = generate_labels_pdf(
        [(found[pid], verification_url(base_url, found[pid], issued_at)) for pid in product_ids],
        title=f"{current_app.config['REPORT_TITLE']} - Labels"
    )
    return Response(
        stream.getvalue(),
        mimetype='application/pdf',
        headers={
            "Content-Disposition": f"attachment; filename=labels_{engine.ledger.id}.pdf"
        }
    )


#######################################################################
#  MANUFACTURERS
#######################################################################

@bp.route('/ledgers/<int:ledger_id>/manufacturers/<identity>')
@ledger_required
def manufacturer_status(engine, identity):
    return jsonify({
        'manufacturer': identity,
        'authorized': engine.is_authorized_manufacturer(identity)
    })


@bp.route('/ledgers/<int:ledger_id>/manufacturers/<identity>', methods=['PUT'])
@login_required
@limiter.limit("60 per hour")
@ledger_required
def authorize_manufacturer(engine, identity):
    """Grant or revoke registration rights (owner only)."""
    form = AuthorizationForm()
    if not form.validate_on_submit():
        return invalid(form_errors(form))

    result = engine.authorize_manufacturer(
        current_user.identity,
        identity,
        form.authorized.data
    )
    if not result.ok:
        return rejection(result.error)
    return jsonify({
        'manufacturer': identity,
        'authorized': form.authorized.data
    })


@bp.route('/ledgers/<int:ledger_id>/manufacturers/<identity>/products')
@ledger_required
def products_by_manufacturer(engine, identity):
    return jsonify({
        'manufacturer': identity,
        'product_ids': engine.get_products_by_manufacturer(identity)
    })


@bp.route('/ledgers/<int:ledger_id>/batches/<batch_number>/exists')
@ledger_required
def batch_exists(engine, batch_number):
    """Check whether a manufacturer already registered a batch number."""
    manufacturer = request.args.get('manufacturer', '').strip()
    if not manufacturer:
        return invalid({'manufacturer': ['Query parameter is required']})
    return jsonify({
        'batch_number': batch_number,
        'manufacturer': manufacturer,
        'exists': engine.product_exists(batch_number, manufacturer)
    })
