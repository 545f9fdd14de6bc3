# src/contractsim/api/routes.py
from __future__ import annotations

from fastapi import APIRouter

from contractsim.api.routes_parts.auctions import router as auctions_router
from contractsim.api.routes_parts.events import router as events_router
from contractsim.api.routes_parts.governance import router as governance_router
from contractsim.api.routes_parts.health import router as health_router
from contractsim.api.routes_parts.metrics import router as metrics_router
from contractsim.api.routes_parts.staking import router as staking_router
from contractsim.api.routes_parts.users import router as users_router

API_PREFIX = "/api"

public_router = APIRouter()

public_router.include_router(health_router, prefix=API_PREFIX, tags=["health"])
public_router.include_router(users_router, prefix=API_PREFIX, tags=["users"])
public_router.include_router(governance_router, prefix=API_PREFIX, tags=["governance"])
public_router.include_router(staking_router, prefix=API_PREFIX, tags=["staking"])
public_router.include_router(auctions_router, prefix=API_PREFIX, tags=["auctions"])
public_router.include_router(events_router, prefix=API_PREFIX, tags=["events"])

# Ops
public_router.include_router(metrics_router, prefix=API_PREFIX, tags=["metrics"])
