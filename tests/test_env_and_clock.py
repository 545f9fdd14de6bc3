from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from contractsim import env
from contractsim.runtime.clock import ManualClock, SystemClock
from contractsim.runtime.event_log import log_event


def test_dotenv_loads_once_without_overriding(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    p = tmp_path / "sim.env"
    p.write_text("CSIM_TEST_FROM_DOTENV=loaded\nCSIM_TEST_PRESET=from_file\n", encoding="utf-8")
    monkeypatch.delenv("CSIM_TEST_FROM_DOTENV", raising=False)
    monkeypatch.setenv("CSIM_TEST_PRESET", "from_env")
    env._reset_for_tests()

    try:
        assert env.load_dotenv_if_present(str(p)) is True
        assert os.environ["CSIM_TEST_FROM_DOTENV"] == "loaded"
        assert os.environ["CSIM_TEST_PRESET"] == "from_env"
        assert env.load_dotenv_if_present(str(p)) is False
    finally:
        os.environ.pop("CSIM_TEST_FROM_DOTENV", None)
        env._reset_for_tests()


def test_dotenv_missing_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CSIM_DOTENV_PATH", str(tmp_path / "absent.env"))
    env._reset_for_tests()
    try:
        assert env.load_dotenv_if_present() is False
    finally:
        env._reset_for_tests()


def test_manual_clock_only_moves_forward() -> None:
    c = ManualClock(start_ms=1000)
    assert c.now_ms() == 1000
    assert c.advance_ms(500) == 1500
    assert c.advance_seconds(1.5) == 3000
    with pytest.raises(ValueError):
        c.advance_ms(-1)
    assert c.now_ms() == 3000


def test_system_clock_is_millis() -> None:
    assert SystemClock().now_ms() > 1_600_000_000_000


def test_log_event_emits_json(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("contractsim.test")
    with caplog.at_level(logging.INFO, logger="contractsim.test"):
        log_event(logger, "staked", address="0xabc", amount=5)

    rec = caplog.records[-1].getMessage()
    assert '"event":"staked"' in rec
    assert '"amount":5' in rec
