from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from shelf_alerts.config import (
    DEFAULT_ADVANCE_NOTICE_DAYS,
    DEFAULT_ALERT_HOUR,
    DEFAULT_ALERT_MINUTE,
    DEFAULT_DAILY_CHECK_HOUR,
    DEFAULT_DAILY_CHECK_MINUTE,
    DEFAULT_USER_ID,
    MAX_ADVANCE_NOTICE_DAYS,
    MIN_ADVANCE_NOTICE_DAYS,
    SNOOZE_DELAY_HOURS,
)


EntryKind = Literal[
    "expiration-day-offset",
    "expiration-today",
    "daily-check",
    "immediate",
    "snoozed",
    "custom-reminder",
]
AuthorizationState = Literal["notDetermined", "authorized", "denied", "provisional", "ephemeral"]

PERMITTING_STATES: tuple[str, ...] = ("authorized", "provisional", "ephemeral")


class InventoryItem(BaseModel):
    id: str
    name: str
    quantity: int = Field(default=1, ge=0)
    expires_on: Optional[str] = None


class SchedulingPolicy(BaseModel):
    advance_notice_days: int = Field(
        default=DEFAULT_ADVANCE_NOTICE_DAYS,
        ge=MIN_ADVANCE_NOTICE_DAYS,
        le=MAX_ADVANCE_NOTICE_DAYS,
    )
    daily_check_enabled: bool = True
    alert_hour: int = Field(default=DEFAULT_ALERT_HOUR, ge=0, le=23)
    alert_minute: int = Field(default=DEFAULT_ALERT_MINUTE, ge=0, le=59)
    daily_check_hour: int = Field(default=DEFAULT_DAILY_CHECK_HOUR, ge=0, le=23)
    daily_check_minute: int = Field(default=DEFAULT_DAILY_CHECK_MINUTE, ge=0, le=59)
    expiration_alerts_enabled: bool = True

    model_config = {"frozen": True}


class NotificationPayload(BaseModel):
    type: str = "expiration"
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    quantity: Optional[int] = None
    days_until_expiration: Optional[int] = None


class NotificationContent(BaseModel):
    title: str
    body: str
    silent: bool = False
    category: Optional[str] = None
    payload: NotificationPayload = Field(default_factory=NotificationPayload)


class NotificationEntry(BaseModel):
    identity: str
    kind: EntryKind
    fire_at: Optional[datetime] = None
    repeats: bool = False
    content: NotificationContent
    created_at: Optional[datetime] = None


class NavigateToItem(BaseModel):
    type: Literal["navigate_to_item"] = "navigate_to_item"
    item_id: str


class MarkConsumed(BaseModel):
    type: Literal["mark_consumed"] = "mark_consumed"
    item_id: str
    quantity: int = Field(default=1, ge=1)


class ScheduleSnooze(BaseModel):
    type: Literal["schedule_snooze"] = "schedule_snooze"
    item_id: str
    delay_hours: int = SNOOZE_DELAY_HOURS
    payload: NotificationPayload = Field(default_factory=NotificationPayload)


DomainCommand = Union[NavigateToItem, MarkConsumed, ScheduleSnooze]


class ReconcilePlan(BaseModel):
    to_add: list[NotificationEntry] = []
    to_cancel: list[str] = []

    @property
    def is_noop(self) -> bool:
        return not self.to_add and not self.to_cancel


class ReconcileReport(BaseModel):
    authorized: bool = True
    planned: int = 0
    added: list[str] = []
    canceled: list[str] = []
    failed: dict[str, str] = {}


# -- HTTP payloads ---------------------------------------------------------


class InventoryCreateRequest(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, gt=0)
    expires_on: str


class InventoryAdjustRequest(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    delta_quantity: int


class NotificationPreferencesPayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    advance_notice_days: Optional[int] = None
    daily_check_enabled: Optional[bool] = None
    alert_hour: Optional[int] = Field(default=None, ge=0, le=23)
    alert_minute: Optional[int] = Field(default=None, ge=0, le=59)
    daily_check_hour: Optional[int] = Field(default=None, ge=0, le=23)
    daily_check_minute: Optional[int] = Field(default=None, ge=0, le=59)
    expiration_alerts_enabled: Optional[bool] = None


class UserPayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)


class RunDuePayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    as_of_datetime: Optional[datetime] = None


class UserActionPayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    identity: str
    action_id: str


class ImmediateNotificationPayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    item_id: Optional[str] = None
    message: Optional[str] = None


class CustomReminderPayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    item_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    body: str = ""
    fire_at: datetime


class AuthorizationResponsePayload(BaseModel):
    user_id: str = Field(default=DEFAULT_USER_ID)
    granted: bool
    provisional: bool = False
