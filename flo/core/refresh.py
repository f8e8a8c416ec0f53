"""Single-flight credential refresh.

At most one refresh exchange runs at a time. Every caller that hits a 401
while a refresh is running waits on its own future in a FIFO queue; the
queue is drained exactly once per refresh, either all resolved with the new
token or all rejected with AuthenticationError.

State transitions never straddle an await, so on a single event loop no
second caller can observe IDLE between the check and the set.

A refresh result is only installed if the credential it started from is
still current. A logout or a new login during the exchange wins, and the
queue is settled against that newer state instead.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from flo.core.credentials import CredentialStore
from flo.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class TokenPair:
    """Result of a login or refresh exchange."""
    access_token: str
    refresh_token: str | None = None
    access_token_expires: str | None = None
    refresh_token_expires: str | None = None

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> "TokenPair":
        """Build from ``{accessToken, refreshToken?, accessTokenExpires?, refreshTokenExpires?}``."""
        access_token = body.get("accessToken") if isinstance(body, dict) else None
        if not access_token:
            raise AuthenticationError("Token response did not contain an access token.")
        return cls(
            access_token=access_token,
            refresh_token=body.get("refreshToken") or None,
            access_token_expires=body.get("accessTokenExpires"),
            refresh_token_expires=body.get("refreshTokenExpires"),
        )


RefreshExchange = Callable[[str], Awaitable[TokenPair]]
SessionEndedHook = Callable[[], Awaitable[None]]


class RefreshCoordinator:
    """Owns the refresh state machine and the pending-request queue."""

    def __init__(
        self,
        credentials: CredentialStore,
        exchange: RefreshExchange | None = None,
        on_session_ended: SessionEndedHook | None = None,
    ):
        """Initialize the coordinator.

        Args:
            credentials: The authoritative credential store
            exchange: Trades a refresh token for a new TokenPair. None means
                no refresh mechanism is configured and every 401 is terminal.
            on_session_ended: Zero-argument async hook awaited once per
                terminal authentication failure
        """
        self.credentials = credentials
        self.exchange = exchange
        self.on_session_ended = on_session_ended
        self.state = RefreshState.IDLE
        self.refresh_count = 0
        self._pending: deque[asyncio.Future] = deque()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def recover(self, failed_token: str | None) -> str:
        """Obtain a token to retry a request that was rejected with 401.

        Args:
            failed_token: The token the rejected request was sent with

        Returns:
            The token to retry with

        Raises:
            AuthenticationError: Refresh failed, is not configured, or there
                is no session to recover
        """
        if self.state is RefreshState.IDLE:
            current = self.credentials.token
            if current is not None and current != failed_token:
                # A refresh already completed after this request was sent.
                return current
            if current is None and self.credentials.refresh_token is None:
                raise AuthenticationError("Not authenticated. Please login.")
            self.state = RefreshState.REFRESHING
            task = asyncio.ensure_future(self._refresh(self.credentials.epoch))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        waiter = asyncio.get_running_loop().create_future()
        self._pending.append(waiter)
        return await waiter

    async def reject(self, failed_token: str | None, message: str) -> None:
        """End the session after a freshly recovered token was rejected as well.

        Only the first caller for a given token clears it and notifies the
        host; later callers find the credential already gone or replaced.
        The rejected request itself is never retried.
        """
        if failed_token is None or self.credentials.token != failed_token:
            return
        logger.warning("Recovered credential was rejected: %s", message)
        await self._clear_credential()
        # A refresh still in flight notices the cleared credential and rejects its own queue.
        await self._notify_session_ended()

    async def close(self) -> None:
        """Cancel any in-flight refresh; its queued callers are rejected."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self.state is RefreshState.REFRESHING:
            # Cancelled before its first step, so its own cleanup never ran.
            self._drain(error_message="Credential refresh was interrupted.")

    async def _exchange(self) -> TokenPair:
        refresh_token = self.credentials.refresh_token
        if self.exchange is None:
            raise AuthenticationError("Session expired. Please login again.")
        if not refresh_token:
            raise AuthenticationError("Session expired. No refresh token available.")
        return await self.exchange(refresh_token)

    async def _refresh(self, epoch: int) -> None:
        self.refresh_count += 1
        logger.info("Refreshing credential (%d caller(s) waiting)", len(self._pending))
        settled = False
        try:
            try:
                pair = await self._exchange()
            except Exception as e:
                if self.credentials.epoch != epoch:
                    settled = True
                    self._settle_superseded()
                    return
                logger.warning("Credential refresh failed: %s", e)
                await self._clear_credential()
                message = "Session expired. Unable to refresh token."
                if isinstance(e, AuthenticationError):
                    message = e.message
                settled = True
                drained = self._drain(error_message=message)
                logger.warning("Session ended, rejected %d caller(s)", drained)
                await self._notify_session_ended()
                return

            if self.credentials.epoch != epoch:
                settled = True
                self._settle_superseded()
                return

            try:
                await self.credentials.set(pair.access_token, pair.refresh_token)
            except Exception as e:
                # In-memory credential is already installed; only persistence failed.
                logger.warning("Failed to persist refreshed credential: %s", e)
            settled = True
            drained = self._drain(token=pair.access_token)
            logger.info("Credential refreshed, resumed %d caller(s)", drained)
        finally:
            if not settled:
                drained = self._drain(error_message="Credential refresh was interrupted.")
                logger.warning("Credential refresh interrupted, rejected %d caller(s)", drained)

    def _settle_superseded(self) -> None:
        """The credential changed during the exchange (logout or a new login)."""
        current = self.credentials.token
        if current is not None:
            drained = self._drain(token=current)
            logger.info("Credential replaced during refresh, resumed %d caller(s)", drained)
        else:
            drained = self._drain(error_message="Session ended during refresh. Please login again.")
            logger.info("Session ended during refresh, rejected %d caller(s)", drained)

    async def _clear_credential(self) -> None:
        try:
            await self.credentials.clear()
        except Exception as e:
            logger.warning("Failed to clear persisted credential: %s", e)

    async def _notify_session_ended(self) -> None:
        if self.on_session_ended:
            try:
                await self.on_session_ended()
            except Exception:
                logger.exception("Session-ended hook failed")

    def _drain(self, token: str | None = None, error_message: str | None = None) -> int:
        """Return to IDLE and settle every queued caller. No awaits inside."""
        self.state = RefreshState.IDLE
        pending, self._pending = self._pending, deque()
        for waiter in pending:
            if waiter.done():
                continue  # caller abandoned its request
            if error_message is not None:
                waiter.set_exception(AuthenticationError(error_message))
            else:
                waiter.set_result(token)
        return len(pending)
