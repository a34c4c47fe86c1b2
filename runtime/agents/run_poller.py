"""RunPoller: waits for an assistant run to finish.

OpenAI runs are asynchronous jobs; the only way to observe them is to
query their status. The poller turns that into a single awaitable:

- status 'completed'              -> fetch the message list once and return it
- queued / in_progress / unknown  -> sleep `poll_interval`, query again
- failed / cancelled / expired /
  incomplete / requires_action    -> RunFailedException

Runs given up on (timeout, requires_action, CancelToken) are cancelled on the
service, since a thread with an active run refuses new messages.

Polling is bounded by `max_attempts` status queries and by a `timeout`
deadline (RunTimeoutException), and can be stopped through a CancelToken
(RunCancelledException). Waits use asyncio.sleep, so other chats keep being
served while one run is pending.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from openai import OpenAIError

from configs.settings import settings
from exceptions.exceptions import (
    RunCancelledException,
    RunFailedException,
    RunTimeoutException,
)


logger = logging.getLogger(__name__)

COMPLETED_STATUS = "completed"
REQUIRES_ACTION_STATUS = "requires_action"
FAILED_STATUSES = frozenset(
    {"failed", "cancelled", "expired", "incomplete", "requires_action"}
)


@dataclass
class CancelToken:
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def is_cancelled(self) -> bool:
        return bool(self.cancelled)


def _describe_last_error(run: Any) -> Optional[str]:
    last_error = getattr(run, "last_error", None)
    if last_error is None:
        return None
    code = getattr(last_error, "code", None)
    message = getattr(last_error, "message", None)
    if code and message:
        return f"{code}: {message}"
    return message or code or str(last_error)


class RunPoller:
    """Polls run status through an AssistantGateway.

    Parameters
    ----------
    gateway:
        Object exposing `retrieve_run`, `list_messages` and `cancel_run`
        (see core.api.openai_client.AssistantGateway).
    poll_interval:
        Seconds between two status queries.
    max_attempts:
        Maximum number of status queries; None disables the limit.
    timeout:
        Deadline in seconds measured from the first query; None disables it.
    sleep, clock:
        Injected for tests; default to asyncio.sleep and time.monotonic.
    """

    def __init__(
        self,
        gateway: Any,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.poll_interval = (
            settings.poll_interval if poll_interval is None else poll_interval
        )
        self.max_attempts = (
            settings.poll_max_attempts if max_attempts is None else max_attempts
        )
        self.timeout = settings.poll_timeout if timeout is None else timeout
        self._sleep = sleep
        self._clock = clock

    async def wait_for_messages(
        self,
        thread_id: str,
        run_id: str,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        """Block (cooperatively) until the run completes; return its messages."""
        attempts = 0
        started = self._clock()
        status = None

        while True:
            await self._check_cancelled(thread_id, run_id, cancel_token)

            run = await self.gateway.retrieve_run(thread_id, run_id)
            attempts += 1
            status = str(getattr(run, "status", ""))

            if status == COMPLETED_STATUS:
                logger.debug("Run %s completed after %d checks", run_id, attempts)
                return await self.gateway.list_messages(thread_id)

            if status in FAILED_STATUSES:
                details = _describe_last_error(run)
                logger.warning("Run %s ended with status %s (%s)", run_id, status, details)
                if status == REQUIRES_ACTION_STATUS:
                    # Tool calls are not answered; the run would block the thread.
                    await self._cancel_run_quietly(thread_id, run_id)
                raise RunFailedException(run_id, status, details)

            elapsed = self._clock() - started
            out_of_attempts = self.max_attempts is not None and attempts >= self.max_attempts
            out_of_time = self.timeout is not None and elapsed >= self.timeout
            if out_of_attempts or out_of_time:
                logger.warning(
                    "Run %s still %s after %d checks (%.1fs); giving up",
                    run_id,
                    status,
                    attempts,
                    elapsed,
                )
                await self._cancel_run_quietly(thread_id, run_id)
                raise RunTimeoutException(run_id, attempts, elapsed, status)

            logger.debug("Waiting for run %s (status=%s)...", run_id, status)
            await self._sleep(self.poll_interval)

    async def _check_cancelled(
        self,
        thread_id: str,
        run_id: str,
        cancel_token: Optional[CancelToken],
    ) -> None:
        if cancel_token is None or not cancel_token.is_cancelled():
            return

        await self._cancel_run_quietly(thread_id, run_id)
        raise RunCancelledException(run_id)

    async def _cancel_run_quietly(self, thread_id: str, run_id: str) -> None:
        """Ask the service to stop a run we no longer wait for."""
        try:
            await self.gateway.cancel_run(thread_id, run_id)
        except OpenAIError:
            # The run may already be finished; we are giving up on it anyway.
            logger.warning("Could not cancel run %s on thread %s", run_id, thread_id, exc_info=True)
