from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from contractsim.api.routes_parts.common import _executor, _int_param

router = APIRouter()


def heartbeat_event(now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    return {
        "type": "heartbeat",
        "title": "System Status",
        "description": "All systems operational",
        "timestamp": now.strftime("%H:%M:%S"),
    }


async def _never_disconnected() -> bool:
    return False


async def iter_heartbeats(
    interval_s: float,
    *,
    limit: Optional[int] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    is_disconnected: Callable[[], Awaitable[bool]] = _never_disconnected,
) -> AsyncIterator[str]:
    """Server-sent event frames: one heartbeat now, then one per interval.

    Runs on the event loop, not a worker thread. Stops once the client goes
    away. Heartbeats carry no ordering guarantee relative to ledger mutations.
    """
    sent = 0
    while limit is None or sent < limit:
        if sent:
            await sleep(interval_s)
        if await is_disconnected():
            return
        yield f"data: {json.dumps(heartbeat_event())}\n\n"
        sent += 1


@router.get("/events")
async def events(request: Request):
    ex = _executor(request)
    raw_limit = request.query_params.get("limit")
    limit = max(1, _int_param(raw_limit, 1)) if raw_limit is not None else None
    return StreamingResponse(
        iter_heartbeats(ex.cfg.heartbeat_interval_s, limit=limit, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
