"""Tests for the Supabase Realtime (Phoenix) client."""

import asyncio
import json
import logging

import aiohttp
import pytest

from gatherkids.database import realtime
from gatherkids.database.realtime import PHOENIX_TOPIC, RealtimeClient, realtime_url
from gatherkids.domain.enums import ChangeType


class FakeSocket:
    closed = False

    def __init__(self):
        self.sent = []

    async def send_str(self, data):
        self.sent.append(json.loads(data))


def _change(topic, kind, record=None, old_record=None):
    return json.dumps({
        "topic": topic, "event": "postgres_changes", "ref": None,
        "payload": {"ids": [1], "data": {
            "schema": "public", "table": "children", "commit_timestamp": "2025-01-01T00:00:00Z",
            "type": kind, "record": record, "old_record": old_record,
        }},
    })


@pytest.fixture
def client():
    return RealtimeClient("https://project.supabase.co", "anon-key", heartbeat=0, autoconnect=False)


def test_socket_url():
    assert realtime_url("https://project.supabase.co/", "k") == (
        "wss://project.supabase.co/realtime/v1/websocket?apikey=k&vsn=1.0.0"
    )
    assert realtime_url("http://localhost:54321", "k").startswith("ws://localhost:54321/realtime/v1/")


@pytest.mark.asyncio
async def test_dispatch_by_topic_and_change_type(client):
    got = []
    await client.subscribe("children", lambda table, kind, record: got.append((table, kind, record)))
    (topic,) = client.subscriptions

    client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))
    client.handle_message(_change(topic, "UPDATE", record={"child_id": "c1", "grade": "2"},
                                  old_record={"child_id": "c1"}))
    client.handle_message(_change(topic, "DELETE", old_record={"child_id": "c1"}))
    client.handle_message(_change("realtime:other:99", "INSERT", record={"child_id": "x"}))

    assert got == [
        ("children", ChangeType.INSERT, {"child_id": "c1"}),
        ("children", ChangeType.UPDATE, {"child_id": "c1", "grade": "2"}),
        ("children", ChangeType.DELETE, {"child_id": "c1"}),
    ]


@pytest.mark.asyncio
async def test_ignores_control_and_junk_frames(client):
    got = []
    await client.subscribe("children", lambda *args: got.append(args))
    (topic,) = client.subscriptions

    client.handle_message("not json")
    client.handle_message({"topic": topic, "event": "phx_reply", "payload": {"status": "ok"}})
    client.handle_message({"topic": topic, "event": "presence_state", "payload": {}})
    client.handle_message(_change(topic, "TRUNCATE"))
    assert got == []


@pytest.mark.asyncio
@pytest.mark.parametrize("frame", [
    "[1, 2]",
    "\"hello\"",
    "42",
    "null",
    {"topic": "realtime:children:1", "event": "postgres_changes", "payload": [1]},
    {"topic": "realtime:children:1", "event": "phx_reply", "payload": "ok"},
    {"topic": "realtime:children:1", "event": "postgres_changes", "payload": {"data": ["INSERT"]}},
    {"topic": "realtime:children:1", "event": "postgres_changes",
     "payload": {"data": {"type": "INSERT", "record": "c1"}}},
])
async def test_malformed_frames_are_dropped(client, caplog, frame):
    got = []
    await client.subscribe("children", lambda table, kind, record: got.append(record))
    (topic,) = client.subscriptions
    assert topic == "realtime:children:1"

    with caplog.at_level(logging.WARNING, logger="gatherkids.database.realtime"):
        client.handle_message(frame)
    assert got == []
    assert "dropping" in caplog.text

    client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))
    assert got == [{"child_id": "c1"}]


@pytest.mark.asyncio
async def test_socket_loop_survives_unexpected_errors(monkeypatch, caplog):
    attempts = []
    real_sleep = asyncio.sleep

    async def no_wait(delay):
        await real_sleep(0)

    def session_factory():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("frame handler bug")
        client._closing = True
        raise aiohttp.ClientError("socket down")

    client = RealtimeClient("https://project.supabase.co", "anon-key", session_factory=session_factory)
    monkeypatch.setattr(realtime.asyncio, "sleep", no_wait)
    with caplog.at_level(logging.WARNING, logger="gatherkids.database.realtime"):
        await client._run()

    assert len(attempts) == 2
    assert "Realtime socket loop failed" in caplog.text
    assert "socket down" in caplog.text


@pytest.mark.asyncio
async def test_unsubscribe_only_affects_its_own_channel(client):
    first, second = [], []
    stop_first = await client.subscribe("children", lambda *a: first.append(a))
    await client.subscribe("children", lambda *a: second.append(a))
    topic_a, topic_b = client.subscriptions

    stop_first()
    stop_first()
    for topic in (topic_a, topic_b):
        client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))

    assert first == []
    assert len(second) == 1


@pytest.mark.asyncio
async def test_async_callbacks_are_scheduled(client):
    got = []

    async def callback(table, kind, record):
        got.append(record)

    await client.subscribe("children", callback)
    (topic,) = client.subscriptions
    client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert got == [{"child_id": "c1"}]


@pytest.mark.asyncio
async def test_failing_callback_is_logged(client, caplog):
    def callback(table, kind, record):
        raise RuntimeError("subscriber bug")

    await client.subscribe("children", callback)
    (topic,) = client.subscriptions
    with caplog.at_level(logging.ERROR, logger="gatherkids.database.realtime"):
        client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))
    assert "Realtime callback for children raised" in caplog.text


@pytest.mark.asyncio
async def test_join_and_leave_frames(client):
    socket = FakeSocket()
    client._ws = socket

    unsubscribe = await client.subscribe("households", lambda *a: None)
    join = socket.sent[0]
    assert join["event"] == "phx_join"
    assert join["topic"].startswith("realtime:households:")
    assert join["payload"]["config"]["postgres_changes"] == [
        {"event": "*", "schema": "public", "table": "households"},
    ]

    unsubscribe()
    await asyncio.sleep(0)
    assert socket.sent[-1]["event"] == "phx_leave"
    assert socket.sent[-1]["topic"] == join["topic"]


@pytest.mark.asyncio
async def test_heartbeat_frames(client):
    socket = FakeSocket()
    client._ws = socket
    beat = asyncio.create_task(client._heartbeat())
    for _ in range(3):
        await asyncio.sleep(0)
    beat.cancel()
    assert socket.sent
    assert all(f["topic"] == PHOENIX_TOPIC and f["event"] == "heartbeat" for f in socket.sent)


@pytest.mark.asyncio
async def test_close_stops_delivery(client):
    got = []
    await client.subscribe("children", lambda *a: got.append(a))
    (topic,) = client.subscriptions
    await client.close()
    client.handle_message(_change(topic, "INSERT", record={"child_id": "c1"}))
    assert got == []
    assert client.subscriptions == {}
