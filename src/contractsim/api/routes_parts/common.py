from __future__ import annotations

from typing import Any, Optional

from fastapi import Request

from contractsim.api.errors import ApiError
from contractsim.api.security import acting_address
from contractsim.runtime.executor import SimExecutor


def _executor(request: Request) -> SimExecutor:
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _actor(request: Request, body_value: Optional[str], *, field: str) -> str:
    addr = acting_address(request, body_value)
    if not addr:
        raise ApiError.bad_request("missing_address", f"Missing required field: {field}", {"field": field})
    return addr


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    s = str(v).strip()
    if s == "":
        return int(default)
    try:
        return int(s)
    except ValueError:
        return int(default)
