from __future__ import annotations

import time

from fastapi import APIRouter, Request

from contractsim import __version__

router = APIRouter()


@router.get("/health")
def health(request: Request):
    ex = getattr(request.app.state, "executor", None)
    cfg = getattr(request.app.state, "cfg", None)
    return {
        "ok": True,
        "version": __version__,
        "mode": getattr(cfg, "mode", "unknown"),
        "ready": ex is not None,
        "currentBlock": ex.ledger.block_number if ex is not None else None,
        "ts_ms": int(time.time() * 1000),
    }
