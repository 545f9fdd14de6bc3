from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from contractsim.api.app import create_app


def test_request_size_limit_returns_413(monkeypatch: pytest.MonkeyPatch, executor) -> None:
    # Make limit very small for test determinism.
    monkeypatch.setenv("CSIM_MAX_REQUEST_BYTES", "128")
    monkeypatch.delenv("CSIM_SIZE_LIMIT_DISABLE", raising=False)

    c = TestClient(create_app(executor=executor))

    payload = {
        "title": "Oversized Proposal",
        "description": "x" * 500,
        "creator": "0x" + "1" * 40,
    }
    r = c.post("/api/proposals", json=payload)
    assert r.status_code == 413

    j = r.json()
    assert j.get("success") is False
    assert j.get("code") == "request_too_large"
    assert executor.list_proposals() == []

    # Small bodies still pass through to the route.
    r = c.post("/api/user/initialize")
    assert r.status_code == 200


def test_request_size_limit_can_be_disabled(monkeypatch: pytest.MonkeyPatch, executor) -> None:
    monkeypatch.setenv("CSIM_MAX_REQUEST_BYTES", "128")
    monkeypatch.setenv("CSIM_SIZE_LIMIT_DISABLE", "1")

    c = TestClient(create_app(executor=executor))
    user = c.post("/api/user/initialize").json()["user"]

    r = c.post(
        "/api/proposals",
        json={"title": "Large But Allowed", "description": "x" * 500, "creator": user["address"]},
    )
    assert r.status_code == 200
