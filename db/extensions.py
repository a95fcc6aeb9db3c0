# db/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_mail import Mail
import redis
from redis.connection import ConnectionPool, SSLConnection
import urllib.parse
import logging

db = SQLAlchemy()
migrate = Migrate()
mail = Mail()

logger = logging.getLogger(__name__)

# Set by init_redis(); only the redis slot lock backend needs it
_redis_client = None


def create_redis_pool(redis_url=None, use_tls=False, socket_timeout=5, max_connections=50):
    """
    Connection pool for the slot lock client. Lock acquisition polls Redis,
    so connections are reused instead of reconnecting (and re-handshaking
    TLS) on every poll.
    """
    parsed = urllib.parse.urlparse(redis_url) if redis_url else None

    pool_kwargs = {
        'host': parsed.hostname if parsed else 'localhost',
        'port': (parsed.port if parsed else None) or 6379,
        'db': int(parsed.path.lstrip('/') or 0) if parsed else 0,
        'decode_responses': True,
        'socket_connect_timeout': 10,
        'socket_timeout': socket_timeout,
        'retry_on_timeout': True,
        'max_connections': max_connections,
    }
    if parsed:
        pool_kwargs.update({
            'username': parsed.username,
            'password': parsed.password,
            'socket_keepalive': True,
            'retry_on_error': [
                redis.exceptions.ConnectionError,
                redis.exceptions.TimeoutError
            ],
            'health_check_interval': 30,
        })

    if parsed and (use_tls or parsed.scheme == 'rediss'):
        pool_kwargs.update({
            'connection_class': SSLConnection,
            'ssl_cert_reqs': None,
            'ssl_check_hostname': False,
        })

    try:
        pool = ConnectionPool(**pool_kwargs)
    except Exception as e:
        logger.error(f"❌ Failed to create Redis pool: {str(e)}")
        raise

    tls = 'connection_class' in pool_kwargs
    logger.info(f"✅ Redis pool for slot locks: {pool_kwargs['host']}:{pool_kwargs['port']} tls={tls}")
    return pool


def init_redis(app):
    """Build the process-wide Redis client from app config and warm it up."""
    global _redis_client
    pool = create_redis_pool(
        app.config.get('REDIS_URL'),
        use_tls=app.config.get('REDIS_TLS_ENABLED', False),
        socket_timeout=app.config.get('REDIS_SOCKET_TIMEOUT', 5),
        max_connections=app.config.get('REDIS_MAX_CONNECTIONS', 50),
    )
    _redis_client = redis.Redis(connection_pool=pool)

    try:
        _redis_client.ping()
        logger.info("✅ Redis reachable")
    except redis.exceptions.RedisError as e:
        # Bookings will fail with a retryable error until Redis is back
        logger.warning(f"⚠️  Redis not reachable at startup: {str(e)}")
    return _redis_client


def get_redis():
    if _redis_client is None:
        raise RuntimeError("Redis client is not initialised; call init_redis(app) first")
    return _redis_client


def check_redis_health():
    try:
        get_redis().ping()
        return True
    except (redis.exceptions.RedisError, RuntimeError) as e:
        logger.error(f"❌ Redis health check failed: {str(e)}")
        return False
