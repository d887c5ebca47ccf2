from __future__ import annotations


class ShelfAlertsError(Exception):
    """Base class for recoverable scheduling errors."""


class NotAuthorized(ShelfAlertsError):
    def __init__(self, state: str) -> None:
        super().__init__(f"notifications are not authorized (state={state})")
        self.state = state


class MalformedItem(ShelfAlertsError):
    def __init__(self, item_id: str, raw_value: str | None) -> None:
        super().__init__(f"inventory item {item_id!r} has no usable expiration date ({raw_value!r})")
        self.item_id = item_id
        self.raw_value = raw_value


class DeliverySinkFailure(ShelfAlertsError):
    def __init__(self, identity: str, reason: str) -> None:
        super().__init__(f"delivery sink rejected {identity!r}: {reason}")
        self.identity = identity
        self.reason = reason


class PolicyUnavailable(ShelfAlertsError):
    pass
