# db/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_mail import Mail
import os
import redis
from redis.connection import ConnectionPool, SSLConnection
import urllib.parse
import logging

db = SQLAlchemy()
migrate = Migrate()
mail = Mail()

logger = logging.getLogger(__name__)


def create_redis_pool():
    """
    Build one Redis connection pool for the process.
    Used for webhook event de-duplication, so a short socket timeout is enough.
    """
    redis_url = os.getenv('REDIS_URL')
    use_tls = os.getenv('REDIS_TLS_ENABLED', 'false').lower() == 'true'

    if not redis_url:
        logger.info("🔧 Local Redis pool")
        return ConnectionPool(
            host=os.getenv('REDIS_HOST', 'localhost'),
            port=int(os.getenv('REDIS_PORT', 6379)),
            db=int(os.getenv('REDIS_DB', 0)),
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            max_connections=20,
        )

    parsed = urllib.parse.urlparse(redis_url)
    pool_kwargs = {
        'host': parsed.hostname,
        'port': parsed.port or 6379,
        'username': parsed.username,
        'password': parsed.password,
        'decode_responses': True,
        'socket_connect_timeout': 10,
        'socket_timeout': 5,
        'socket_keepalive': True,
        'retry_on_timeout': True,
        'health_check_interval': 30,
        'max_connections': 50,
    }

    if use_tls or parsed.scheme == 'rediss':
        pool_kwargs.update({
            'connection_class': SSLConnection,
            'ssl_cert_reqs': None,
            'ssl_check_hostname': False,
        })
        logger.info("✅ Redis pool with SSL/TLS enabled")

    pool = ConnectionPool(**pool_kwargs)
    logger.info(f"✅ Redis connection pool created: {parsed.hostname}")
    return pool


# Connections are opened lazily on first command
redis_pool = create_redis_pool()
redis_client = redis.Redis(connection_pool=redis_pool)


def check_redis_health():
    try:
        redis_client.ping()
        return True
    except redis.exceptions.RedisError as e:
        logger.error(f"❌ Redis health check failed: {str(e)}")
        return False
