import asyncio

import pytest

from fakes import FakePermissions

from shelf_alerts.errors import NotAuthorized
from shelf_alerts.services.authorization import AuthorizationGate


def test_existing_decision_is_returned_without_prompting() -> None:
    permissions = FakePermissions(status="authorized")
    gate = AuthorizationGate(permissions, timeout=0.1)

    state = asyncio.run(gate.request_authorization())

    assert state == "authorized"
    assert gate.is_authorized()
    assert permissions.prompt_calls == 0


def test_concurrent_requests_share_one_prompt() -> None:
    permissions = FakePermissions()
    gate = AuthorizationGate(permissions, timeout=1.0)
    granted = []
    gate.on_authorized(lambda: granted.append(True))

    async def scenario():
        callers = [asyncio.create_task(gate.request_authorization()) for _ in range(3)]
        await asyncio.sleep(0.01)
        permissions.answer_with("authorized")
        return await asyncio.gather(*callers)

    results = asyncio.run(scenario())

    assert results == ["authorized", "authorized", "authorized"]
    assert permissions.prompt_calls == 1
    assert granted == [True]


def test_unanswered_prompt_times_out_and_is_joined_later() -> None:
    permissions = FakePermissions()
    gate = AuthorizationGate(permissions, timeout=0.05)

    async def scenario():
        first = await gate.request_authorization()
        second_task = asyncio.create_task(gate.request_authorization(timeout=1.0))
        await asyncio.sleep(0.01)
        permissions.answer_with("denied")
        return first, await second_task

    first, second = asyncio.run(scenario())

    assert first == "notDetermined"
    assert second == "denied"
    assert permissions.prompt_calls == 1
    assert not gate.is_authorized()


def test_denied_does_not_fire_authorized_callbacks() -> None:
    gate = AuthorizationGate(FakePermissions(status="denied"))
    granted = []
    gate.on_authorized(lambda: granted.append(True))

    asyncio.run(gate.refresh_status())

    assert granted == []
    with pytest.raises(NotAuthorized):
        gate.ensure_authorized()


def test_provisional_permits_scheduling_and_fires_once() -> None:
    permissions = FakePermissions(status="provisional")
    gate = AuthorizationGate(permissions)
    granted = []
    gate.on_authorized(lambda: granted.append(True))

    async def scenario():
        await gate.refresh_status()
        permissions.status = "authorized"
        await gate.refresh_status()

    asyncio.run(scenario())

    assert gate.is_authorized()
    assert granted == [True]
