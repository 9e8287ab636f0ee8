"""Tests for CallbackBridge and ChannelBridge."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from codemate.application.bridge import ASK, CONFIRM, CallbackBridge, ChannelBridge


@pytest.mark.asyncio
async def test_callback_bridge_without_callbacks_fails_closed():
    bridge = CallbackBridge()
    assert await bridge.confirm("Delete?") is False
    assert await bridge.ask_user("Name?") == ""


@pytest.mark.asyncio
async def test_callback_bridge_forwards():
    confirm = AsyncMock(return_value=1)
    ask = AsyncMock(return_value=None)
    bridge = CallbackBridge(confirm=confirm, ask_user=ask)

    assert await bridge.confirm("Delete?", "File: a") is True
    assert await bridge.ask_user("Name?", ["a"]) == ""
    confirm.assert_awaited_once_with("Delete?", "File: a")
    ask.assert_awaited_once_with("Name?", ["a"])


@pytest.mark.asyncio
async def test_channel_bridge_confirm_resolved_by_host():
    bridge = ChannelBridge()
    waiter = asyncio.create_task(bridge.confirm("Overwrite?", "File: a.txt"))

    request = await bridge.next_request()
    assert request.kind == CONFIRM
    assert request.details == "File: a.txt"
    assert [r.id for r in bridge.pending] == [request.id]

    bridge.resolve(request.id, True)
    assert await waiter is True
    assert bridge.pending == []


@pytest.mark.asyncio
async def test_channel_bridge_reject():
    bridge = ChannelBridge()
    confirm = asyncio.create_task(bridge.confirm("Delete?"))
    ask = asyncio.create_task(bridge.ask_user("Name?", ["x", "y"]))

    first = await bridge.next_request()
    second = await bridge.next_request()
    assert (first.kind, second.kind) == (CONFIRM, ASK)
    assert second.options == ["x", "y"]

    bridge.reject(first.id)
    bridge.reject(second.id)
    assert await confirm is False
    assert await ask == ""


@pytest.mark.asyncio
async def test_channel_bridge_answer_and_unknown_id():
    bridge = ChannelBridge()
    ask = asyncio.create_task(bridge.ask_user("Colour?"))
    request = await bridge.next_request()
    bridge.resolve(request.id, "green")
    assert await ask == "green"

    with pytest.raises(KeyError):
        bridge.resolve(request.id, "again")
    with pytest.raises(KeyError):
        bridge.reject(999)
