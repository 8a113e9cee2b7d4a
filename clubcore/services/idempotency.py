"""Idempotency gatekeeper for mutating operations.

A client sends an ``Idempotency-Key`` with each mutating call. The first
call for a ``(key, operation_id)`` pair runs the operation and stores its
result in the same transaction as the operation's own writes; every later
call with the same pair gets the stored result back without running the
operation again.
"""

import logging
import re
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import IdempotencyKeyError
from clubcore.models import IdempotencyRecord
from clubcore.utils.timezone import Clock, SystemClock

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
# At least one letter so sequence numbers like "1234567890123456" are rejected
_TOKEN_RE = re.compile(r"^(?=.*[A-Za-z])[A-Za-z0-9_-]{16,255}$")


def is_valid_idempotency_key(key: Optional[str]) -> bool:
    if not key:
        return False
    return bool(_UUID_RE.match(key) or _TOKEN_RE.match(key))


def ensure_valid_key(key: Optional[str]) -> str:
    if not is_valid_idempotency_key(key):
        raise IdempotencyKeyError()
    return key


def generate_idempotency_key() -> str:
    return str(uuid.uuid4())


class IdempotentResult(BaseModel):
    """Outcome of a gated call."""

    result: Any = None
    replayed: bool = False


class IdempotencyGatekeeper:
    """Runs an operation at most once per ``(key, operation_id)``.

    The caller decides what ``operation_id`` covers; the command layer uses
    ``<operation>:<actor id>:<target id>``.
    """

    def __init__(self, db: AsyncSession, clock: Clock = SystemClock()):
        self.db = db
        self.clock = clock

    async def lookup(self, key: str, operation_id: str) -> Optional[IdempotencyRecord]:
        result = await self.db.execute(
            select(IdempotencyRecord)
            .where(
                IdempotencyRecord.key == key,
                IdempotencyRecord.operation_id == operation_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def execute(
        self,
        key: Optional[str],
        operation_id: str,
        fn: Callable[[], Awaitable[Any]],
        actor_id: Optional[str] = None,
    ) -> IdempotentResult:
        """Run ``fn`` once and cache its JSON-serializable result.

        ``fn`` must only flush; this method commits its writes together with
        the idempotency record. Errors are not cached.
        """
        key = ensure_valid_key(key)

        existing = await self.lookup(key, operation_id)
        if existing is not None:
            logger.info(f"Idempotent replay for {operation_id} (key={key})")
            return IdempotentResult(result=existing.result, replayed=True)

        try:
            result = await fn()
            self.db.add(
                IdempotencyRecord(
                    key=key,
                    operation_id=operation_id,
                    actor_id=actor_id,
                    result=result,
                    created_at=self.clock(),
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            # A concurrent replay may have committed first; hand back its result
            existing = await self.lookup(key, operation_id)
            if existing is not None:
                logger.info(f"Idempotent replay after race for {operation_id} (key={key})")
                return IdempotentResult(result=existing.result, replayed=True)
            raise

        return IdempotentResult(result=result, replayed=False)

    async def cleanup_expired(self, ttl_hours: int = 24) -> int:
        """Delete records older than ``ttl_hours``. Returns the number removed."""
        cutoff = self.clock() - timedelta(hours=ttl_hours)
        try:
            result = await self.db.execute(
                delete(IdempotencyRecord).where(IdempotencyRecord.created_at < cutoff)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        deleted_count = result.rowcount or 0
        logger.info(f"Deleted {deleted_count} idempotency keys older than {ttl_hours}h")
        return deleted_count
