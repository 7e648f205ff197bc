import os
from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from .env file, fallback to .env.development
env_path = os.path.join(os.path.dirname(__file__), '.env')
if not os.path.exists(env_path):
    env_path = os.path.join(os.path.dirname(__file__), '.env.development')
load_dotenv(env_path)


def normalize_database_url(url):
    """Rewrite Heroku/Render style ``postgres://`` URLs for SQLAlchemy."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


def engine_options_for(uri):
    """Build SQLAlchemy engine options for the given database URI.

    Pool sizing and connect timeouts only apply to server databases;
    SQLite gets the pre-ping option alone.
    """
    url = make_url(uri)

    # Common options safe for all databases
    options = {
        'pool_pre_ping': True,
    }

    if not url.drivername.startswith('sqlite'):
        options.update({
            'pool_size': int(os.environ.get('SQLALCHEMY_POOL_SIZE', 10)),
            'pool_recycle': int(os.environ.get('SQLALCHEMY_POOL_RECYCLE', 300)),
            'pool_timeout': int(os.environ.get('SQLALCHEMY_POOL_TIMEOUT', 20)),
            'max_overflow': int(os.environ.get('SQLALCHEMY_MAX_OVERFLOW', 5)),
        })

        connect_timeout = int(os.environ.get('SQLALCHEMY_CONNECT_TIMEOUT', 10))
        if url.drivername.startswith('postgresql'):
            options['connect_args'] = {
                'connect_timeout': connect_timeout,
                'keepalives': 1,
                'keepalives_idle': 30,
                'keepalives_interval': 10,
                'keepalives_count': 5
            }
        elif url.drivername.startswith('mysql'):
            options['connect_args'] = {
                'connect_timeout': connect_timeout
            }

    return options


class Config:
    """Base configuration class"""
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        if os.environ.get('FLASK_ENV') == 'production':
            raise ValueError("SECRET_KEY must be set in production")
        SECRET_KEY = 'dev-secret-key'

    SQLALCHEMY_DATABASE_URI = (
        normalize_database_url(os.environ.get('DATABASE_URL'))
        or 'sqlite:///' + os.path.join(basedir, 'custody.db')
    )
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_for(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DEBUG = os.environ.get('FLASK_ENV') == 'development'

    # The JSON API authenticates callers by header, not by session cookie
    WTF_CSRF_ENABLED = False

    # Header carrying the caller identity, set by the authenticating gateway
    CALLER_HEADER = os.environ.get('CALLER_HEADER', 'X-Caller-Identity')

    # Ensure a ledger owned by this identity exists at startup
    DEFAULT_LEDGER_OWNER = os.environ.get('DEFAULT_LEDGER_OWNER')

    # Redis configuration with fallback
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379')

    # Rate limiting configuration
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_STORAGE_URI = 'memory://'

    # Timezone used when rendering custody reports
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')
    REPORT_TITLE = os.environ.get('REPORT_TITLE', 'Chain of Custody Report')

    # Origin encoded in product QR labels; defaults to the request host
    VERIFY_BASE_URL = os.environ.get('VERIFY_BASE_URL')

    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT', 'true').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = normalize_database_url(os.environ.get('DATABASE_URL'))
    SQLALCHEMY_ENGINE_OPTIONS = (
        engine_options_for(SQLALCHEMY_DATABASE_URI)
        if SQLALCHEMY_DATABASE_URI else {}
    )

    REDIS_URL = os.environ.get('REDIS_URL') or Config.REDIS_URL
    RATELIMIT_STORAGE_URI = REDIS_URL

    # Fan socket events out through Redis when running several workers
    SOCKETIO_MESSAGE_QUEUE = REDIS_URL


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'  # Use in-memory database
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False  # Disable rate limiting in tests
    LOG_TO_STDOUT = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration class based on environment"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
