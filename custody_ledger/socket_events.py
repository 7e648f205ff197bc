# custody_ledger/socket_events.py

import logging

from flask_socketio import emit, join_room, leave_room

from custody_ledger.extensions import db, socketio
from custody_ledger.models import Ledger
from custody_ledger.notifications import ledger_room

logger = logging.getLogger(__name__)


def _ledger_id(data):
    ledger_id = data.get('ledger_id') if isinstance(data, dict) else None
    if isinstance(ledger_id, bool) or not isinstance(ledger_id, int):
        return None
    return ledger_id


@socketio.on('join_ledger')
def handle_join_ledger(data):
    """Subscribe the client to one ledger's events"""
    ledger_id = _ledger_id(data)
    if ledger_id is None or db.session.get(Ledger, ledger_id) is None:
        emit('status', {'error': 'Unknown ledger', 'ledger_id': ledger_id})
        return False
    join_room(ledger_room(ledger_id))
    logger.info(f'Client joined ledger {ledger_id}')
    emit('status', {'joined': ledger_id})
    return True


@socketio.on('leave_ledger')
def handle_leave_ledger(data):
    ledger_id = _ledger_id(data)
    if ledger_id is None:
        return False
    leave_room(ledger_room(ledger_id))
    emit('status', {'left': ledger_id})
    return True
