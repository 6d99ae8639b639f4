"""Request/response correlation with per-request deadlines."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .errors import RemoteError, RequestTimeoutError
from .protocol.types import JsonRpcResponse

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """A sent request waiting for its response."""

    id: int
    method: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle


class RequestCorrelator:
    """Allocates request ids and matches responses back to their callers.

    Ids start at 1 and only ever increase, so an id is never reused while
    the owning session lives. Each pending entry ends exactly once: by a
    matching response, by its timer, or by reject_all().
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._last_id = 0
        self._pending: dict[int, PendingRequest] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, request_id: int) -> bool:
        return request_id in self._pending

    def register(self, method: str) -> tuple[int, asyncio.Future[Any]]:
        """Allocate the next id and start its deadline timer."""
        loop = asyncio.get_running_loop()
        self._last_id += 1
        request_id = self._last_id

        future: asyncio.Future[Any] = loop.create_future()
        timer = loop.call_later(self.timeout, self._expire, request_id)
        self._pending[request_id] = PendingRequest(request_id, method, future, timer)
        # The awaiting task may be cancelled; don't keep its entry around.
        future.add_done_callback(lambda f: self._discard_cancelled(request_id, f))
        return request_id, future

    def resolve(self, response: JsonRpcResponse) -> bool:
        """Complete the request matching response.id.

        Returns False when no pending request has that id (already timed
        out, never issued, or issued by someone else).
        """
        if not isinstance(response.id, int) or isinstance(response.id, bool):
            return False
        entry = self._pending.pop(response.id, None)
        if entry is None:
            return False

        entry.timer.cancel()
        if entry.future.done():
            return True

        if response.is_error():
            entry.future.set_exception(RemoteError.from_error(response.error_payload()))
        else:
            entry.future.set_result(response.result)
        return True

    def reject_all(self, cause: BaseException) -> None:
        """Fail every pending request with cause and clear the map."""
        if not self._pending:
            return

        entries = list(self._pending.values())
        self._pending.clear()
        logger.debug(f"Rejecting {len(entries)} pending request(s): {cause}")
        for entry in entries:
            entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(cause)

    def _expire(self, request_id: int) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        logger.debug(f"Request {request_id} ({entry.method}) timed out after {self.timeout}s")
        if not entry.future.done():
            entry.future.set_exception(RequestTimeoutError(entry.method, self.timeout))

    def _discard_cancelled(self, request_id: int, future: asyncio.Future[Any]) -> None:
        if not future.cancelled():
            return
        entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.timer.cancel()
