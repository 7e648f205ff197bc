# custody_ledger/notifications.py

import functools
import logging

from redis.exceptions import RedisError

from custody_ledger.extensions import socketio

logger = logging.getLogger(__name__)

PRODUCT_REGISTERED = 'product_registered'
CUSTODY_TRANSFERRED = 'custody_transferred'
AUTHORIZATION_CHANGED = 'manufacturer_authorized'


def handle_redis_error(f):
    """Retry an emit once when the Redis message queue hiccups, then give up.

    Delivery is fire-and-forget: errors are logged, never raised.
    """
    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RedisError as e:
            logger.error(f"Redis error while emitting event: {str(e)}")
            try:
                return f(*args, **kwargs)
            except Exception as e2:
                logger.error(f"Retry emit also failed: {str(e2)}")
        except Exception as e:
            logger.error(f"Unexpected error while emitting event: {str(e)}")
        return None
    return wrapped


def ledger_room(ledger_id):
    return f"ledger-{ledger_id}"


class SocketIONotifier:
    """Publishes ledger events to connected Socket.IO clients.

    Events of one ledger go to that ledger's room; clients join it with
    the ``join_ledger`` event. Without a ledger id the event is broadcast.
    """

    def __init__(self, namespace='/'):
        self.namespace = namespace

    def notify(self, event, payload, ledger_id=None):
        room = ledger_room(ledger_id) if ledger_id is not None else None
        _emit(event, payload, self.namespace, room)


@handle_redis_error
def _emit(event, payload, namespace, room=None):
    socketio.emit(event, payload, namespace=namespace, to=room)


class RecordingNotifier:
    """Keeps every notification in memory, in delivery order."""

    def __init__(self):
        self.events = []
        self.ledger_ids = []

    def notify(self, event, payload, ledger_id=None):
        self.events.append((event, dict(payload)))
        self.ledger_ids.append(ledger_id)

    def of_type(self, event):
        return [payload for name, payload in self.events if name == event]

    def clear(self):
        del self.events[:]
        del self.ledger_ids[:]


class NullNotifier:
    def notify(self, event, payload, ledger_id=None):
        pass
