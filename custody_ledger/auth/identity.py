# custody_ledger/auth/identity.py

from flask import current_app, jsonify
from flask_login import UserMixin

from custody_ledger.extensions import login_manager


class Caller(UserMixin):
    """An identity already authenticated by the gateway in front of us."""

    def __init__(self, identity):
        self.identity = identity

    def get_id(self):
        return self.identity

    def __repr__(self):
        return f'<Caller {self.identity}>'


@login_manager.request_loader
def load_caller_from_request(request):
    """Read the caller identity from the configured header.

    Signature checks happen upstream; an empty header means anonymous.
    """
    identity = request.headers.get(current_app.config['CALLER_HEADER'], '').strip()
    if not identity:
        return None
    return Caller(identity)


@login_manager.unauthorized_handler
def caller_required():
    return jsonify({
        'error': 'Unauthenticated',
        'message': f"Missing {current_app.config['CALLER_HEADER']} header"
    }), 401
