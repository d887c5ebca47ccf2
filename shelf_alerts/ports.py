"""Collaborator interfaces the scheduling core depends on."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from shelf_alerts.models import (
    AuthorizationState,
    DomainCommand,
    InventoryItem,
    NotificationEntry,
    NotificationPayload,
    SchedulingPolicy,
)

MaybeAwaitable = Union[Awaitable[Any], Any]
PolicyCallback = Callable[[SchedulingPolicy], MaybeAwaitable]
UserActionCallback = Callable[[str, NotificationPayload], MaybeAwaitable]
DeliveredCallback = Callable[[NotificationEntry], MaybeAwaitable]


class InventorySnapshotProvider(Protocol):
    def get_items(self) -> list[InventoryItem]:
        """Current cached inventory. Never contains zero-quantity items."""


class PreferenceStore(Protocol):
    def get_policy(self) -> SchedulingPolicy:
        """Current policy. Raises PolicyUnavailable when it cannot be read."""

    def on_policy_changed(self, callback: PolicyCallback) -> None:
        """Register a callback invoked with the new policy after each change."""


class DeliverySink(Protocol):
    async def schedule(self, entry: NotificationEntry) -> None:
        """Register an entry. Raises DeliverySinkFailure on rejection."""

    async def cancel(self, identities: list[str]) -> None:
        """Drop pending entries by identity. Raises DeliverySinkFailure on rejection."""

    async def list_pending(self) -> list[NotificationEntry]:
        """Entries registered and not yet delivered or canceled."""

    async def list_delivered(self) -> list[NotificationEntry]:
        """Recently delivered single-fire entries, newest first."""

    def on_user_action(self, callback: UserActionCallback) -> None:
        """Register a callback for user actions on delivered entries."""

    def on_delivered(self, callback: DeliveredCallback) -> None:
        """Register a callback for each delivered entry."""


class PermissionProvider(Protocol):
    async def current_status(self) -> AuthorizationState:
        """Decision currently recorded by the platform permission system."""

    async def prompt(self) -> AuthorizationState:
        """Ask the user; suspends until they answer."""


class CommandConsumer(Protocol):
    async def handle(self, command: DomainCommand) -> Optional[Any]:
        """Apply a domain command emitted by the action router."""
