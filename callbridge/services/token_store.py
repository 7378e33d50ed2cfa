"""One-time recording upload tokens.

Each bridged call mints a token when it starts. The client presents the token
in the ``x-recording-token`` header when uploading its recording of the call,
and the upload is accepted only if the token:

- exists and has not been used before,
- belongs to a call whose connection is still open,
- is younger than the expiry window (10 minutes by default).

Redemption is a single check-then-set guarded by a ``threading.Lock`` so two
concurrent uploads with the same token can never both succeed, whether they
run on the event loop or in a worker thread.

Example:
    ```python
    store = TokenStore(expiry_seconds=600)
    await store.start_cleanup_task()

    token = store.generate_token(session_id)
    result = store.validate_and_use_token(token)
    if result.valid:
        ...

    store.mark_connection_closed(session_id)
    await store.stop_cleanup_task()
    ```
"""

import asyncio
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from callbridge.config.constants import (
    DEFAULT_TOKEN_CLEANUP_INTERVAL,
    DEFAULT_TOKEN_EXPIRY_SECONDS,
    TOKEN_BYTES,
)
from callbridge.config.logging_config import configure_logging

logger = configure_logging("token_store")


@dataclass
class TokenRecord:
    """Bookkeeping for a single upload token."""

    session_id: str
    created_at: float
    used: bool = False
    connection_active: bool = True


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of a redemption attempt."""

    valid: bool
    session_id: Optional[str] = None


class TokenStore:
    """In-memory registry of one-time recording upload tokens.

    All operations are synchronous and never raise for unknown, used or
    expired tokens; those are reported as ``TokenValidation(valid=False)``.

    Args:
        expiry_seconds: Token lifetime measured from creation.
        cleanup_interval: Seconds between background sweeps of expired records.
        clock: Time source returning seconds, injectable for tests.
    """

    def __init__(
        self,
        expiry_seconds: float = DEFAULT_TOKEN_EXPIRY_SECONDS,
        cleanup_interval: float = DEFAULT_TOKEN_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self._tokens: Dict[str, TokenRecord] = {}
        self._lock = threading.Lock()
        self._expiry_seconds = expiry_seconds
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._cleanup_task: Optional[asyncio.Task] = None

    @property
    def expiry_seconds(self) -> float:
        return self._expiry_seconds

    def _is_expired(self, record: TokenRecord, now: float) -> bool:
        return now - record.created_at > self._expiry_seconds

    def generate_token(self, session_id: str) -> str:
        """Mint a new unused token bound to ``session_id``."""
        token = secrets.token_urlsafe(TOKEN_BYTES)
        with self._lock:
            self._tokens[token] = TokenRecord(
                session_id=session_id, created_at=self._clock()
            )
        logger.debug(f"Recording token issued for session {session_id}")
        return token

    def validate_and_use_token(self, token: Optional[str]) -> TokenValidation:
        """Redeem ``token`` if it is valid, marking it used.

        Only the first successful call for a token returns ``valid=True``.
        Expired records encountered here are evicted.
        """
        if not token:
            return TokenValidation(valid=False)

        with self._lock:
            record = self._tokens.get(token)
            if record is None:
                return TokenValidation(valid=False)

            if self._is_expired(record, self._clock()):
                del self._tokens[token]
                logger.info(f"Rejected expired recording token for session {record.session_id}")
                return TokenValidation(valid=False)

            if record.used:
                logger.warning(f"Rejected reused recording token for session {record.session_id}")
                return TokenValidation(valid=False)

            if not record.connection_active:
                logger.warning(
                    f"Rejected recording token for closed session {record.session_id}"
                )
                return TokenValidation(valid=False)

            record.used = True
            return TokenValidation(valid=True, session_id=record.session_id)

    def mark_connection_closed(self, session_id: str) -> None:
        """Invalidate every token belonging to ``session_id``."""
        with self._lock:
            for record in self._tokens.values():
                if record.session_id == session_id:
                    record.connection_active = False

    def revoke_token(self, token: str) -> bool:
        """Delete a single token. Returns True if it existed."""
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def revoke_session_tokens(self, session_id: str) -> int:
        """Delete all tokens for ``session_id`` and return how many were removed."""
        with self._lock:
            doomed = [t for t, r in self._tokens.items() if r.session_id == session_id]
            for token in doomed:
                del self._tokens[token]
        return len(doomed)

    def cleanup(self) -> int:
        """Remove expired tokens and return the number removed."""
        with self._lock:
            now = self._clock()
            expired = [t for t, r in self._tokens.items() if self._is_expired(r, now)]
            for token in expired:
                del self._tokens[token]
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """Counts of tokens by status."""
        with self._lock:
            now = self._clock()
            records = list(self._tokens.values())
            return {
                "total_tokens": len(records),
                "used_tokens": sum(1 for r in records if r.used),
                "active_connection_tokens": sum(
                    1 for r in records if r.connection_active
                ),
                "expired_tokens": sum(1 for r in records if self._is_expired(r, now)),
                "expiry_seconds": self._expiry_seconds,
                "cleanup_interval": self._cleanup_interval,
                "cleanup_task_running": self._cleanup_task is not None
                and not self._cleanup_task.done(),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    async def start_cleanup_task(self) -> None:
        """Start the periodic sweep of expired tokens.

        Raises:
            RuntimeError: If the cleanup task is already running
        """
        if self._cleanup_task is not None and not self._cleanup_task.done():
            raise RuntimeError("Cleanup task is already running")

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(
            f"Token cleanup task started (interval: {self._cleanup_interval}s)"
        )

    async def stop_cleanup_task(self) -> None:
        """Stop the periodic sweep and wait for it to finish."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            logger.info("Token cleanup task stopped")
        self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._cleanup_interval)
                removed = self.cleanup()
                if removed > 0:
                    logger.info(f"Cleaned up {removed} expired recording tokens")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in token cleanup loop: {e}")
