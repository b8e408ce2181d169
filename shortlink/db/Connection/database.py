import logging
from dataclasses import dataclass

import redis
from redis.connection import ConnectionPool
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from shortlink.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class StoreHandles:
    """Connections to the persistent store and the fast cache.

    Built once at startup by open_stores() and released by close_stores().
    """
    engine: Engine
    session_factory: sessionmaker
    redis_client: redis.Redis


def create_db_engine(settings: Settings) -> Engine:
    url = settings.database_url
    timeout = settings.STORE_TIMEOUT_SECONDS

    # SQLite pools differ per URL and do not all take pool_timeout
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False, "timeout": timeout})

    connect_args = {}
    if url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return create_engine(url, pool_pre_ping=True, pool_timeout=timeout, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def create_redis_client(settings: Settings) -> redis.Redis:
    pool = ConnectionPool(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
        socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
        socket_keepalive=True,
    )
    return redis.Redis(connection_pool=pool)


def open_stores(settings: Settings) -> StoreHandles:
    engine = create_db_engine(settings)
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return StoreHandles(
        engine=engine,
        session_factory=create_session_factory(engine),
        redis_client=create_redis_client(settings),
    )


def close_stores(stores: StoreHandles):
    try:
        stores.engine.dispose()
    except Exception:
        logger.debug("Error disposing DB engine", exc_info=True)
    try:
        stores.redis_client.close()
    except Exception:
        logger.debug("Error closing Redis client", exc_info=True)


def verify_redis_connection(redis_client: redis.Redis) -> bool:
    try:
        redis_client.ping()
        logger.info("Redis connection verified")
        return True
    except redis.exceptions.RedisError as e:
        logger.warning(f"Redis connection failed: {e}. Codes will be generated locally.")
        return False


def verify_database_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
