# custody_ledger/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_socketio import SocketIO
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


# Initialize Flask extensions
db = SQLAlchemy()
login_manager = LoginManager()
socketio = SocketIO()
migrate = Migrate()
# Storage comes from RATELIMIT_STORAGE_URI in the app config
limiter = Limiter(key_func=get_remote_address)
