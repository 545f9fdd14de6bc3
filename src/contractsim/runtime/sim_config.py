# src/contractsim/runtime/sim_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return float(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


@dataclass(frozen=True)
class SimConfig:
    mode: str  # "dev" | "test" | "prod"

    api_host: str
    api_port: int
    log_level: str

    # Governance
    proposal_fee: float
    min_proposal_balance: float
    voting_period_ms: int

    # Staking
    staking_apy: float
    reward_rate: float

    # Server-sent heartbeat cadence
    heartbeat_interval_s: float

    # Optional YAML override for the seed auctions
    auction_catalog_path: Optional[str]


_ALLOWED_MODES = {"dev", "test", "prod"}


def validate_sim_config(cfg: SimConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if cfg.proposal_fee < 0:
        raise ValueError(f"proposal_fee must be >= 0; got: {cfg.proposal_fee}")

    if cfg.min_proposal_balance < cfg.proposal_fee:
        raise ValueError("min_proposal_balance must be >= proposal_fee")

    if int(cfg.voting_period_ms) <= 0:
        raise ValueError(f"voting_period_ms must be > 0; got: {cfg.voting_period_ms}")

    if cfg.staking_apy < 0:
        raise ValueError(f"staking_apy must be >= 0; got: {cfg.staking_apy}")

    if cfg.heartbeat_interval_s <= 0:
        raise ValueError(f"heartbeat_interval_s must be > 0; got: {cfg.heartbeat_interval_s}")

    if cfg.auction_catalog_path is not None and not Path(cfg.auction_catalog_path).is_file():
        raise ValueError(f"auction_catalog_path does not exist or is not a file: {cfg.auction_catalog_path!r}")


def default_sim_config() -> SimConfig:
    return SimConfig(
        mode=(os.environ.get("CSIM_MODE") or "dev").strip().lower(),
        api_host="127.0.0.1",
        api_port=5000,
        log_level=(os.environ.get("CSIM_LOG_LEVEL") or "INFO").strip().upper(),
        proposal_fee=100,
        min_proposal_balance=100,
        voting_period_ms=24 * 60 * 60 * 1000,
        staking_apy=15.5,
        reward_rate=0.00001,
        heartbeat_interval_s=30.0,
        auction_catalog_path=None,
    )


def read_sim_config_file(path: str) -> SimConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("simulator config must be a JSON object")

    d = default_sim_config()

    cfg = SimConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).upper(),
        proposal_fee=_as_float(raw.get("proposal_fee"), d.proposal_fee),
        min_proposal_balance=_as_float(raw.get("min_proposal_balance"), d.min_proposal_balance),
        voting_period_ms=_as_int(raw.get("voting_period_ms"), d.voting_period_ms),
        staking_apy=_as_float(raw.get("staking_apy"), d.staking_apy),
        reward_rate=_as_float(raw.get("reward_rate"), d.reward_rate),
        heartbeat_interval_s=_as_float(raw.get("heartbeat_interval_s"), d.heartbeat_interval_s),
        auction_catalog_path=_as_opt_str(raw.get("auction_catalog_path")),
    )

    validate_sim_config(cfg)
    return cfg


def load_sim_config(*, config_path: Optional[str] = None) -> SimConfig:
    p = config_path or os.environ.get("CSIM_CONFIG_PATH")
    if p:
        return read_sim_config_file(p)

    cfg = default_sim_config()
    validate_sim_config(cfg)
    return cfg
