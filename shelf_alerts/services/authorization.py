"""
Notification authorization gate.

Tracks whether notifications may be emitted. State only changes from what
the permission provider reports; the gate never decides on its own. Prompts
are single-flight: concurrent callers join the one in-flight request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from shelf_alerts.config import AUTHORIZATION_WAIT_SECONDS
from shelf_alerts.errors import NotAuthorized
from shelf_alerts.models import PERMITTING_STATES, AuthorizationState
from shelf_alerts.ports import PermissionProvider
from shelf_alerts.utils.callbacks import fire_callbacks

logger = logging.getLogger(__name__)


class AuthorizationGate:
    def __init__(
        self,
        provider: PermissionProvider,
        timeout: float = AUTHORIZATION_WAIT_SECONDS,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._state: AuthorizationState = "notDetermined"
        self._inflight: asyncio.Task | None = None
        self._on_authorized: list[Callable[[], Any]] = []

    @property
    def provider(self) -> PermissionProvider:
        return self._provider

    @property
    def state(self) -> AuthorizationState:
        return self._state

    def is_authorized(self) -> bool:
        return self._state in PERMITTING_STATES

    def ensure_authorized(self) -> None:
        if not self.is_authorized():
            raise NotAuthorized(self._state)

    def on_authorized(self, callback: Callable[[], Any]) -> None:
        self._on_authorized.append(callback)

    async def refresh_status(self) -> AuthorizationState:
        state = await self._provider.current_status()
        await self._transition(state)
        return self._state

    async def request_authorization(self, timeout: float | None = None) -> AuthorizationState:
        """
        Ask for permission, waiting at most `timeout` seconds.

        Returns the provider's decision, or the current state if the user has
        not answered in time. The prompt keeps running after a timeout and a
        later call joins it instead of prompting again.
        """
        wait = self._timeout if timeout is None else timeout
        current = await self._provider.current_status()
        if current != "notDetermined":
            await self._transition(current)
            return self._state

        loop = asyncio.get_running_loop()
        task = self._inflight
        if task is None or task.done() or task.get_loop() is not loop:
            task = loop.create_task(self._prompt())
            self._inflight = task
        else:
            logger.debug("Joining in-flight authorization request")

        try:
            return await asyncio.wait_for(asyncio.shield(task), wait)
        except asyncio.TimeoutError:
            logger.info(f"Authorization still pending after {wait:.1f}s")
            return self._state

    async def _prompt(self) -> AuthorizationState:
        try:
            state = await self._provider.prompt()
        except Exception as e:
            logger.error(f"Authorization prompt failed: {e}")
            return self._state
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None
        await self._transition(state)
        return self._state

    async def _transition(self, state: AuthorizationState) -> None:
        previous = self._state
        self._state = state
        if previous == state:
            return
        logger.info(f"Notification authorization: {previous} -> {state}")
        if state in PERMITTING_STATES and previous not in PERMITTING_STATES:
            await fire_callbacks(self._on_authorized)
