"""
Client side of live play: keep a local copy of one session up to date by polling.

The poll loop is an asyncio task owned by whoever is viewing the session. It ends when the session
completes, or when the viewer stops it (explicitly or by leaving the `async with` block).
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Self
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

COMPLETED = "completed"
NOTHING_SEEN = -1

SessionPayload = dict[str, Any]
OnUpdate = Callable[[SessionPayload], Awaitable[None]]


class SessionPollError(Exception):
    """The server refused the poll (not a transient failure): polling stops."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class SessionPoller:
    """Periodic, cancellable poll of `GET /sessions/{id}/poll`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        session_id: UUID,
        on_update: OnUpdate,
        interval: float = 1.0,
        last_version: int = NOTHING_SEEN,
    ) -> None:
        self.client = client
        self.session_id = session_id
        self.on_update = on_update
        self.interval = interval
        self.last_version = last_version
        self._task: Optional[asyncio.Task[None]] = None

    # -- Lifecycle ---
    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"poll-session-{self.session_id}"
        )

    async def stop(self) -> None:
        """
        Cancel the loop and wait for it to wind down.
        ----
        A SessionPollError that already ended the loop is reported by `wait()` only, so leaving
        the `async with` block never raises it.
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Stopped polling session %s.", self.session_id)
        except SessionPollError as e:
            logger.info("Polling of session %s had been refused: %s", self.session_id, e)

    async def wait(self) -> None:
        """Until the session completes (re-raises a SessionPollError that ended the loop)."""
        if self._task is not None:
            await self._task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # -- Polling ---
    async def poll_once(self) -> SessionPayload:
        """One poll. Delivers a newer session to `on_update` and returns the raw response body."""
        response = await self.client.get(
            f"/sessions/{self.session_id}/poll",
            params={"last_version": self.last_version},
        )
        payload = self._unwrap(response)
        if payload["has_updates"]:
            await self._deliver(payload["session"])
        elif payload["status"] == COMPLETED:
            # Ended without a move (resignation, agreed draw, flag claim): fetch the final state once.
            response = await self.client.get(f"/sessions/{self.session_id}")
            await self._deliver(self._unwrap(response))
        return payload

    async def _run(self) -> None:
        while True:
            try:
                payload = await self.poll_once()
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                logger.warning(
                    "Polling session %s failed (%s); retrying in %.1fs.",
                    self.session_id,
                    e,
                    self.interval,
                )
            else:
                if payload["status"] == COMPLETED:
                    logger.info("Session %s completed; polling stops.", self.session_id)
                    return
            await asyncio.sleep(self.interval)

    async def _deliver(self, session: SessionPayload) -> None:
        self.last_version = session["version"]
        await self.on_update(session)

    @staticmethod
    def _unwrap(response: httpx.Response) -> SessionPayload:
        """Body of a successful response. 5xx is transient (retried next cycle); 4xx ends polling."""
        if response.status_code >= 500:
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code}",
                request=response.request,
                response=response,
            )
        if response.status_code >= 400:
            raise SessionPollError(response.status_code, _detail_of(response))
        return response.json()


def _detail_of(response: httpx.Response) -> str:
    """`detail` of a JSON error body; proxies and gateways may answer with plain text or HTML instead."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text[:200]
