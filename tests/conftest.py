from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "contractsim" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from contractsim.runtime import metrics  # noqa: E402
from contractsim.runtime.clock import ManualClock  # noqa: E402
from contractsim.runtime.executor import SimExecutor, build_executor  # noqa: E402
from contractsim.runtime.sim_config import default_sim_config  # noqa: E402


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Route tests fire more writes than the default bucket allows.
    monkeypatch.setenv("CSIM_RATE_LIMIT_DISABLE", "1")
    monkeypatch.setenv("CSIM_LOG_REQUESTS", "0")
    monkeypatch.delenv("CSIM_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CSIM_CORS_ORIGINS", raising=False)
    monkeypatch.delenv("CSIM_MODE", raising=False)
    metrics.reset()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def executor(clock: ManualClock) -> SimExecutor:
    return build_executor(default_sim_config(), clock=clock)


@pytest.fixture
def ledger(executor: SimExecutor):
    return executor.ledger
