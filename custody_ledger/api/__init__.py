from flask import Blueprint

bp = Blueprint('api', __name__)

from custody_ledger.api import routes  # noqa: E402,F401
