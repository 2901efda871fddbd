# app/db/base.py
import asyncio
import json
import logging
import os
from typing import Optional

import asyncpg

from app.core.config import settings, BASE_DIR

logger = logging.getLogger(__name__)

# Global pool, created in the FastAPI lifespan
db_pool: Optional[asyncpg.Pool] = None

VALID_SSL_MODES = ('disable', 'allow', 'prefer', 'require', 'verify-ca', 'verify-full')


async def _init_connection(conn: asyncpg.Connection):
    """Per-connection setup: user profiles are JSONB documents, decode them to dicts."""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog',
    )


def _check_ssl_config():
    if settings.DB_SSL_MODE not in VALID_SSL_MODES:
        logger.critical(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")
        raise ValueError(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")

    if settings.DB_SSL_MODE in ('verify-ca', 'verify-full'):
        if not settings.DB_CA_CERT_FILE:
            logger.critical("DB_SSL_MODE requires certificate verification, but DB_CA_CERT_FILE is not set.")
            raise RuntimeError("Database CA certificate file not configured for required SSL mode.")
        ca_cert_path = os.path.join(BASE_DIR, 'certs', settings.DB_CA_CERT_FILE)
        if not os.path.exists(ca_cert_path):
            logger.critical(f"Database CA certificate file not found at expected path: {ca_cert_path}")
            raise FileNotFoundError(f"Database CA certificate file not found: {ca_cert_path}")
        logger.info(f"Using Database CA certificate file: {ca_cert_path} for sslmode={settings.DB_SSL_MODE}")


async def init_db_pool(retries: int = 5, delay_seconds: int = 5):
    """Initializes the asyncpg connection pool, retrying while the database comes up."""
    global db_pool
    if db_pool:
        logger.warning("Database pool already initialized.")
        return

    logger.info("Initializing asyncpg database pool...")
    _check_ssl_config()

    while retries > 0:
        try:
            if not settings.DATABASE_URL:
                raise ValueError("DATABASE_URL is not configured in settings.")
            # DSN carries sslmode/sslrootcert; never log it, it contains the password
            db_pool = await asyncpg.create_pool(
                dsn=settings.DATABASE_URL,
                min_size=2,
                max_size=20,
                command_timeout=60,
                init=_init_connection,
            )
            async with db_pool.acquire() as conn:
                await conn.execute("SELECT 1")
            logger.info("Asyncpg database pool initialized and connection tested (min: 2, max: 20).")
            return

        except (OSError, asyncpg.PostgresError) as e:
            retries -= 1
            logger.warning(f"Database pool initialization failed ({type(e).__name__}: {e}), retrying in {delay_seconds}s ({retries} left)...")
            if retries == 0:
                logger.critical("Database pool initialization failed after multiple retries.", exc_info=True)
                db_pool = None
                raise RuntimeError("Failed to connect to database after multiple retries.") from e
            await asyncio.sleep(delay_seconds)
        except ValueError as e:
            # Configuration problems are not retried
            logger.critical(f"CRITICAL: Configuration error during database pool initialization: {e}", exc_info=True)
            db_pool = None
            raise RuntimeError("Database configuration error.") from e
        except Exception as e:
            logger.critical(f"CRITICAL: Unexpected error during database pool initialization: {e}", exc_info=True)
            db_pool = None
            raise RuntimeError("Unexpected error initializing database pool.") from e


async def close_db_pool():
    """Closes the asyncpg connection pool gracefully."""
    global db_pool
    pool_to_close = db_pool
    if not pool_to_close:
        logger.warning("Attempted to close DB pool, but it was not initialized.")
        return

    logger.info("Closing asyncpg database pool...")
    try:
        await pool_to_close.close()
        logger.info("Asyncpg database pool closed gracefully.")
    except Exception as e:
        logger.error(f"Error while closing DB pool: {e}", exc_info=True)
    finally:
        db_pool = None
