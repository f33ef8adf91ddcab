import asyncio
import json
import logging

import pytest

from solwatch_service.monitor import SubscriptionError, WebSocketLogFeed, parse_log_notification
from solwatch_service.monitor.feed import WebSocketLogSubscription
from utils.solana_fakes import BUY_LOGS, PROGRAM_ID


def _notification_frame(signature="sig-1", logs=BUY_LOGS, err=None, subscription=42):
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "method": "logsNotification",
            "params": {
                "result": {
                    "context": {"slot": 5208469},
                    "value": {"signature": signature, "err": err, "logs": list(logs)},
                },
                "subscription": subscription,
            },
        }
    )


class FakeWebSocket:
    """Async-iterable socket that yields queued frames, then blocks until closed."""

    def __init__(self, frames=()):
        self.sent = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self._queue.put_nowait(frame)

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def close(self):
        self.closed = True
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._queue.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


def test_parse_log_notification_extracts_fields():
    notification = parse_log_notification(json.loads(_notification_frame(err={"InstructionError": [0, "Custom"]})))

    assert notification.signature == "sig-1"
    assert notification.logs == BUY_LOGS
    assert notification.slot == 5208469
    assert notification.err == {"InstructionError": [0, "Custom"]}


def test_parse_log_notification_ignores_other_frames():
    assert parse_log_notification({"jsonrpc": "2.0", "id": 1, "result": 7}) is None
    assert parse_log_notification({"method": "logsNotification", "params": {"result": {"value": {}}}}) is None


@pytest.mark.asyncio
async def test_subscription_dispatches_notifications_after_ack():
    received = []
    errors = []

    async def on_event(notification):
        received.append(notification.signature)

    async def on_error(exc):
        errors.append(exc)

    subscription = WebSocketLogSubscription(
        FakeWebSocket(),
        request_id=1,
        on_event=on_event,
        on_error=on_error,
        logger=logging.getLogger("test.feed"),
    )

    await subscription.handle_message(json.dumps({"jsonrpc": "2.0", "id": 1, "result": 42}))
    await subscription.handle_message("not json")
    await subscription.handle_message(_notification_frame("sig-a"))

    assert subscription.subscription_id == 42
    assert received == ["sig-a"]
    assert errors == []


@pytest.mark.asyncio
async def test_subscription_rejection_raises():
    async def noop(_):
        return None

    subscription = WebSocketLogSubscription(
        FakeWebSocket(),
        request_id=3,
        on_event=noop,
        on_error=noop,
        logger=logging.getLogger("test.feed"),
    )

    with pytest.raises(SubscriptionError):
        await subscription.handle_message(
            json.dumps({"jsonrpc": "2.0", "id": 3, "error": {"code": -32602, "message": "Invalid params"}})
        )


@pytest.mark.asyncio
async def test_feed_subscribes_with_program_mention_and_streams_events():
    ws = FakeWebSocket([json.dumps({"jsonrpc": "2.0", "id": 1, "result": 99}), _notification_frame("sig-b")])
    connect_kwargs = {}

    async def connect(url, **kwargs):
        connect_kwargs["url"] = url
        connect_kwargs.update(kwargs)
        return ws

    received = asyncio.Queue()

    async def on_event(notification):
        await received.put(notification)

    async def on_error(exc):  # pragma: no cover - not expected here
        raise AssertionError(exc)

    feed = WebSocketLogFeed("wss://ws.example", commitment="confirmed", ping_interval=15, connect=connect)
    subscription = await feed.subscribe(PROGRAM_ID, on_event, on_error)
    notification = await asyncio.wait_for(received.get(), timeout=1)

    assert connect_kwargs["url"] == "wss://ws.example"
    assert connect_kwargs["ping_interval"] == 15
    assert ws.sent[0]["method"] == "logsSubscribe"
    assert ws.sent[0]["params"] == [{"mentions": [PROGRAM_ID]}, {"commitment": "confirmed"}]
    assert notification.signature == "sig-b"
    assert subscription.subscription_id == 99

    await subscription.close()

    assert ws.closed is True
    assert ws.sent[-1] == {"jsonrpc": "2.0", "id": 2, "method": "logsUnsubscribe", "params": [99]}


@pytest.mark.asyncio
async def test_feed_reports_server_side_close():
    ws = FakeWebSocket([json.dumps({"jsonrpc": "2.0", "id": 1, "result": 5})])
    errors = asyncio.Queue()

    async def connect(url, **kwargs):
        return ws

    async def on_event(_notification):  # pragma: no cover - no notifications queued
        return None

    async def on_error(exc):
        await errors.put(exc)

    feed = WebSocketLogFeed("wss://ws.example", connect=connect)
    await feed.subscribe(PROGRAM_ID, on_event, on_error)
    ws._queue.put_nowait(None)

    error = await asyncio.wait_for(errors.get(), timeout=1)

    assert isinstance(error, SubscriptionError)
