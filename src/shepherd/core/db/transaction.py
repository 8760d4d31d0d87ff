"""Transaction boundary shared by every mutating service operation."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.config import get_settings
from src.shepherd.core.exceptions import Conflict, ShepherdError, Unavailable
from src.shepherd.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    operation: str,
    timeout: float | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Run the enclosed store work as one transaction with a deadline.

    Commits on success. On any failure the transaction is rolled back so no
    partial write is ever visible, then:

    - domain errors propagate unchanged;
    - a deadline overrun or a lost connection becomes ``Unavailable``;
    - a unique/check constraint violation becomes ``Conflict`` (a concurrent
      writer got there first).

    A cancellation from outside (a caller's own deadline) also rolls back and
    propagates as-is. Nothing is retried here; retry policy belongs to the caller.
    """
    if timeout is None:
        timeout = get_settings().store_timeout_seconds

    try:
        async with asyncio.timeout(timeout):
            yield session
            await session.commit()
    except ShepherdError:
        await _rollback(session)
        raise
    except asyncio.CancelledError:
        # An outer deadline or shutdown cancelled us mid-transaction.
        await _rollback(session)
        raise
    except TimeoutError as e:
        await _rollback(session)
        logger.warning("Store call timed out", operation=operation, timeout=timeout)
        raise Unavailable(f"{operation} timed out") from e
    except IntegrityError as e:
        await _rollback(session)
        logger.info("Store constraint rejected write", operation=operation, error=str(e.orig))
        raise Conflict(f"{operation} lost a concurrent update") from e
    except (OperationalError, DBAPIError) as e:
        await _rollback(session)
        if getattr(e, "connection_invalidated", False) or isinstance(e, OperationalError):
            logger.error("Store unavailable", operation=operation, error=str(e))
            raise Unavailable(f"{operation} could not reach the store") from e
        logger.error("Store error", operation=operation, error=str(e))
        raise
    except Exception as e:
        await _rollback(session)
        logger.error("Failed to run store operation", operation=operation, error=str(e))
        raise


async def _rollback(session: AsyncSession) -> None:
    # Rollback errors are dropped; the exception being handled propagates.
    with contextlib.suppress(Exception):
        await session.rollback()
