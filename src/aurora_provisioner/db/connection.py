"""
Cluster Connection Manager

Opens a fresh asyncpg connection per call (no pooling across invocations),
validates it with a liveness probe and retries transient failures with a fixed
delay. Authentication failures are never retried here: they usually mean the
credential is stale, which only the caller can fix.
"""

import asyncio
from typing import Awaitable
from typing import Callable
from typing import Optional

import asyncpg
from loguru import logger

from aurora_provisioner.db.sql import LIVENESS_PROBE
from aurora_provisioner.errors import AuthenticationError
from aurora_provisioner.errors import TransientConnectionError
from aurora_provisioner.models import ConnectionConfig

# asyncpg raises InvalidPasswordError (a subclass) for bad passwords and
# InvalidAuthorizationSpecificationError for pg_hba / unknown role rejections
AUTH_ERRORS = (asyncpg.exceptions.InvalidAuthorizationSpecificationError,)


class ConnectionManager:
    """Connection factory with bounded retry for transient failures."""

    def __init__(
        self,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        connect_timeout: float = 10.0,
        connect: Callable[..., Awaitable[asyncpg.Connection]] = asyncpg.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize connection manager.

        Args:
            max_retries: Retries after the first failed attempt
            retry_delay: Fixed delay in seconds between attempts
            connect_timeout: Per-attempt connect/auth timeout in seconds
            connect: Coroutine function opening a connection (asyncpg.connect signature)
            sleep: Coroutine function used between attempts
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.connect_timeout = connect_timeout
        self._connect = connect
        self._sleep = sleep

    async def connect(
        self,
        config: ConnectionConfig,
        database: str,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> asyncpg.Connection:
        """
        Open and validate a connection to `database`.

        Makes at most max_retries + 1 attempts and never sleeps after the last one.

        Raises:
            AuthenticationError: The cluster rejected the credential (single attempt)
            TransientConnectionError: Every attempt failed; chained to the last error
        """
        retries = self.max_retries if max_retries is None else max_retries
        delay = self.retry_delay if retry_delay is None else retry_delay
        attempts = retries + 1
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            logger.info(
                f'Connecting to database "{database}"',
                host=config.host,
                attempt=attempt,
                max_attempts=attempts,
            )
            try:
                conn = await self._open(config, database)
            except AUTH_ERRORS as err:
                logger.error(f"Authentication to {config.host} as {config.user} rejected: {err}")
                raise AuthenticationError(str(err), attempts=attempt) from err
            except Exception as err:  # pylint: disable=broad-except
                last_error = err
            else:
                try:
                    await self._check_liveness(conn)
                    if attempt > 1:
                        logger.info(f'Connected to database "{database}" after {attempt} attempts')
                    return conn
                except Exception as err:  # pylint: disable=broad-except
                    last_error = err
                    await close_quietly(conn)

            if attempt < attempts:
                logger.warning(
                    f"Connection attempt {attempt}/{attempts} failed: {last_error}. Retrying in {delay}s",
                    error_type=type(last_error).__name__,
                )
                await self._sleep(delay)

        logger.error(f'Giving up connecting to database "{database}" after {attempts} attempts: {last_error}')
        raise TransientConnectionError(
            f"{type(last_error).__name__}: {last_error} (after {attempts} attempts)", attempts=attempts
        ) from last_error

    async def _open(self, config: ConnectionConfig, database: str) -> asyncpg.Connection:
        return await self._connect(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=database,
            timeout=self.connect_timeout,
        )

    @staticmethod
    async def _check_liveness(conn: asyncpg.Connection) -> None:
        rows = await conn.fetch(LIVENESS_PROBE)
        if len(rows) != 1:
            raise TransientConnectionError(f"Liveness probe returned {len(rows)} rows, expected 1")


async def close_quietly(conn: asyncpg.Connection) -> None:
    """Close a connection, logging instead of raising on failure."""
    try:
        await conn.close()
    except Exception as err:  # pylint: disable=broad-except
        logger.warning(f"Failed to close connection cleanly: {err}")
