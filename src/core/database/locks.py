"""
Per-account write serialization.

Every mutation of a ledger account (adjustment, payment, reversal) runs inside
``account_transaction``. Within one process an ``asyncio.Lock`` keyed by the
account id queues concurrent requests; across processes the caller takes a
``SELECT ... FOR UPDATE`` row lock and the account's ``version_id_col`` turns a
lost race into ``ConflictError``.

A payment or reversal touches every account sharing the student's period, so
it locks several accounts at once. Locks are always taken in ascending id
order.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.core.exceptions import ConflictError

# Entries disappear once no coroutine holds a reference to the lock.
_account_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(account_id: int) -> asyncio.Lock:
    lock = _account_locks.get(account_id)
    if lock is None:
        lock = asyncio.Lock()
        _account_locks[account_id] = lock
    return lock


@asynccontextmanager
async def account_transaction(session: AsyncSession, *account_ids: int) -> AsyncIterator[None]:
    """
    Serialize work on one or more accounts and make it atomic.

    The body is expected to commit. Any exception rolls the session back so a
    half-applied mutation never reaches the database.
    """
    ids = sorted(set(account_ids))
    async with AsyncExitStack() as stack:
        for account_id in ids:
            await stack.enter_async_context(_lock_for(account_id))
        try:
            yield
        except StaleDataError as e:
            await session.rollback()
            label = ", ".join(str(account_id) for account_id in ids)
            raise ConflictError(
                f"Ledger account {label} was modified concurrently, retry with fresh state"
            ) from e
        except Exception:
            await session.rollback()
            raise
