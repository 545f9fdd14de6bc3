from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contractsim.api.config import load_api_config
from contractsim.api.errors import install_error_handlers
from contractsim.api.routes import public_router
from contractsim.api.security import RateLimitMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from contractsim.api.structured_logging import RequestLogMiddleware
from contractsim.runtime.event_log import log_event
from contractsim.runtime.executor import SimExecutor
from contractsim.runtime.executor import build_executor as _build_executor
from contractsim.runtime.sim_config import SimConfig, load_sim_config

log = logging.getLogger("contractsim.app")


def build_executor(cfg: SimConfig) -> SimExecutor:
    """Build the simulator executor for the API runtime.

    This wrapper exists so tests can monkeypatch `contractsim.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor(cfg)


def create_app(*, boot_runtime: bool = True, executor: Optional[SimExecutor] = None) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load simulator config + attach a fresh executor
      - False: no executor; routes that need one answer 500 not_ready

    executor:
      - attach this executor instead of building one (tests pass one
        driven by a manual clock)
    """
    api_cfg = load_api_config()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        ex = getattr(app.state, "executor", None)
        log_event(log, "app_started", mode=api_cfg.mode, ready=ex is not None)
        yield
        log_event(log, "app_stopped")

    if api_cfg.mode == "prod":
        app = FastAPI(
            title="Smart Contract Simulator API",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=_lifespan,
        )
    else:
        app = FastAPI(title="Smart Contract Simulator API", lifespan=_lifespan)

    app.state.cfg = api_cfg

    if executor is not None:
        app.state.sim_cfg = executor.cfg
        app.state.executor = executor
    elif boot_runtime:
        sim_cfg = load_sim_config()
        app.state.sim_cfg = sim_cfg
        app.state.executor = build_executor(sim_cfg)
    else:
        app.state.sim_cfg = None
        app.state.executor = None

    install_error_handlers(app)

    # --- Middleware (last added runs first) ---
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RateLimitMiddleware)

    if api_cfg.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=api_cfg.cors_origins,
            allow_credentials=api_cfg.cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-User-Address", "X-Request-Id"],
        )

    app.add_middleware(RequestLogMiddleware, enabled=api_cfg.log_requests)

    # --- Routers ---
    app.include_router(public_router)

    return app


# Module-level app for `uvicorn contractsim.api.app:app`.
app = create_app(boot_runtime=True)
