from __future__ import annotations

import json
from pathlib import Path

import pytest

from contractsim.ledger.state import Ledger
from contractsim.runtime.auction_engine import load_auction_catalog
from contractsim.runtime.clock import ManualClock
from contractsim.runtime.executor import SimExecutor, build_executor
from contractsim.runtime.sim_config import default_sim_config, load_sim_config, read_sim_config_file

CATALOG_YAML = """\
auctions:
  - id: 10
    title: Vintage Synth
    description: Analog, fully serviced
    starting_bid: 20
    current_bid: 25
    highest_bidder: null
    end_offset_ms: 60000
    category: music
  - id: 11
    title: Signed Poster
    starting_bid: 5
    end_offset_ms: 120000
"""


def _write_json(path: Path, obj) -> str:
    path.write_text(json.dumps(obj), encoding="utf-8")
    return str(path)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = load_sim_config()
    assert cfg.mode == "dev"
    assert cfg.proposal_fee == 100
    assert cfg.voting_period_ms == 24 * 60 * 60 * 1000
    assert cfg.staking_apy == 15.5
    assert cfg.auction_catalog_path is None

    monkeypatch.setenv("CSIM_MODE", "test")
    assert default_sim_config().mode == "test"


def test_config_file_overrides_and_fills_defaults(tmp_path: Path) -> None:
    p = _write_json(tmp_path / "sim.json", {"mode": "TEST", "api_port": "8080", "voting_period_ms": 5000})
    cfg = read_sim_config_file(p)

    assert cfg.mode == "test"
    assert cfg.api_port == 8080
    assert cfg.voting_period_ms == 5000
    assert cfg.min_proposal_balance == 100


def test_config_path_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    p = _write_json(tmp_path / "sim.json", {"staking_apy": 20})
    monkeypatch.setenv("CSIM_CONFIG_PATH", p)
    assert load_sim_config().staking_apy == 20.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"mode": "staging"},
        {"api_port": 70000},
        {"proposal_fee": -1},
        {"proposal_fee": 200, "min_proposal_balance": 100},
        {"voting_period_ms": 0},
        {"staking_apy": -0.5},
        {"heartbeat_interval_s": 0},
        {"auction_catalog_path": "/nonexistent/catalog.yaml"},
    ],
)
def test_invalid_config_fails_fast(tmp_path: Path, overrides) -> None:
    p = _write_json(tmp_path / "sim.json", overrides)
    with pytest.raises(ValueError):
        read_sim_config_file(p)


def test_config_must_be_object(tmp_path: Path) -> None:
    p = _write_json(tmp_path / "sim.json", [1, 2, 3])
    with pytest.raises(ValueError):
        read_sim_config_file(p)


def test_auction_catalog_yaml(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG_YAML, encoding="utf-8")

    seeds = load_auction_catalog(str(path))
    assert [s.id for s in seeds] == [10, 11]
    assert seeds[0].current_bid == 25
    assert seeds[0].highest_bidder is None
    assert seeds[1].current_bid == 5
    assert seeds[1].description == ""


@pytest.mark.parametrize(
    "text",
    [
        "- just a list\n",
        "auctions: {}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5, end_offset_ms: 0}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5, current_bid: 4, end_offset_ms: 10}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: abc, end_offset_ms: 10}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5, current_bid: .nan, end_offset_ms: 10}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5, current_bid: \"inf\", end_offset_ms: 10}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: true, end_offset_ms: 10}\n",
        "auctions:\n  - {id: 1, title: x, starting_bid: 5, end_offset_ms: 10}\n"
        "  - {id: 1, title: y, starting_bid: 5, end_offset_ms: 10}\n",
    ],
)
def test_bad_auction_catalog(tmp_path: Path, text: str) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_auction_catalog(str(path))


def test_executor_uses_configured_catalog_and_fee(tmp_path: Path) -> None:
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text(CATALOG_YAML, encoding="utf-8")
    p = _write_json(
        tmp_path / "sim.json",
        {"auction_catalog_path": str(catalog), "proposal_fee": 40, "min_proposal_balance": 50},
    )

    ex = build_executor(read_sim_config_file(p), clock=ManualClock())
    assert [a["id"] for a in ex.list_auctions()] == [10, 11]

    u = ex.initialize_user()
    ex.create_proposal("Catalog Update", "Add more music lots to the auction house", u.address)
    assert u.token_balance == 960


def test_auction_catalog_quoted_numbers_are_coerced(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        'auctions:\n  - {id: 1, title: x, starting_bid: "50", current_bid: "125", end_offset_ms: 10}\n',
        encoding="utf-8",
    )

    seeds = load_auction_catalog(str(path))
    assert seeds[0].starting_bid == 50
    assert seeds[0].current_bid == 125

    clock = ManualClock()
    ex = SimExecutor(cfg=default_sim_config(), clock=clock, ledger=Ledger(clock), catalog=seeds)
    u = ex.initialize_user()
    assert ex.place_bid(1, 200, u.address).current_bid == 200
