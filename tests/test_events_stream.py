from __future__ import annotations

import asyncio
import json
from datetime import datetime

from fastapi.testclient import TestClient

from contractsim.api.app import create_app
from contractsim.api.routes_parts.events import heartbeat_event, iter_heartbeats


def test_heartbeat_event_shape() -> None:
    ev = heartbeat_event(datetime(2024, 1, 2, 3, 4, 5))
    assert ev == {
        "type": "heartbeat",
        "title": "System Status",
        "description": "All systems operational",
        "timestamp": "03:04:05",
    }


async def _collect(agen) -> list:
    return [frame async for frame in agen]


def test_iter_heartbeats_sleeps_between_frames() -> None:
    slept = []

    async def _sleep(s: float) -> None:
        slept.append(s)

    frames = asyncio.run(_collect(iter_heartbeats(30.0, limit=3, sleep=_sleep)))

    assert len(frames) == 3
    assert slept == [30.0, 30.0]
    for frame in frames:
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):])["type"] == "heartbeat"


def test_events_endpoint_streams_heartbeat(executor) -> None:
    with TestClient(create_app(executor=executor)) as client:
        r = client.get("/api/events", params={"limit": 1})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/event-stream")

        frames = [f for f in r.text.split("\n\n") if f]
        assert len(frames) == 1
        assert json.loads(frames[0][len("data: "):])["title"] == "System Status"


def test_iter_heartbeats_stops_when_client_disconnects() -> None:
    checks = []

    async def _sleep(_s: float) -> None:
        return None

    async def _gone() -> bool:
        checks.append(1)
        return len(checks) > 2

    frames = asyncio.run(_collect(iter_heartbeats(1.0, sleep=_sleep, is_disconnected=_gone)))
    assert len(frames) == 2
