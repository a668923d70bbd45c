"""Tests for rankbrnd.core.health: check logic and router factory."""

from __future__ import annotations

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rankbrnd.core.health import (
    CheckResult,
    HealthCheck,
    HealthResponse,
    _compute_status,
    _run_checks,
    create_health_router,
    database_check,
)


async def _ok_check():
    return True


async def _fail_check():
    raise RuntimeError("boom")


async def _slow_check():
    await asyncio.sleep(10)
    return True


def test_response_defaults():
    hr = HealthResponse(service="rankbrnd", version="0.1.0")
    assert hr.status == "healthy"
    assert hr.uptime_s >= 0
    assert hr.timestamp.endswith("Z")


class TestRunChecks:
    @pytest.mark.asyncio
    async def test_mixed(self):
        results = await _run_checks([HealthCheck("a", _ok_check), HealthCheck("b", _fail_check)])
        assert results["a"].status == "healthy"
        assert results["a"].latency_ms is not None
        assert results["b"].status == "unhealthy"
        assert results["b"].error == "boom"

    @pytest.mark.asyncio
    async def test_timeout(self):
        results = await _run_checks([HealthCheck("slow", _slow_check, timeout_s=0.05)])
        assert results["slow"].error == "timeout"

    @pytest.mark.asyncio
    async def test_database_check(self, tmp_path):
        check = database_check("sqlite:///probe.db", data_dir=str(tmp_path))
        assert await check() is True


class TestComputeStatus:
    def test_optional_down_is_degraded(self):
        checks = [HealthCheck("db", _ok_check), HealthCheck("cms", _ok_check, required=False)]
        results = {"db": CheckResult(status="healthy"), "cms": CheckResult(status="unhealthy")}
        assert _compute_status(results, checks) == "degraded"

    def test_required_down(self):
        checks = [HealthCheck("db", _ok_check)]
        assert _compute_status({"db": CheckResult(status="unhealthy")}, checks) == "unhealthy"

    def test_no_checks(self):
        assert _compute_status({}, []) == "healthy"


def _client(checks):
    app = FastAPI()
    app.include_router(create_health_router("rankbrnd", version="9.9.9", checks=checks))
    return TestClient(app)


class TestRouter:
    def test_healthy(self):
        client = _client([HealthCheck("db", _ok_check)])
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["service"] == "rankbrnd"
        assert body["version"] == "9.9.9"
        assert body["checks"]["db"]["status"] == "healthy"

    def test_degraded_health_is_200_but_not_ready(self):
        client = _client([HealthCheck("db", _ok_check), HealthCheck("cms", _fail_check, required=False)])
        assert client.get("/health").status_code == 200
        assert client.get("/health").json()["status"] == "degraded"
        assert client.get("/health/ready").status_code == 503

    def test_unhealthy(self):
        client = _client([HealthCheck("db", _fail_check)])
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"

    def test_live_ignores_checks(self):
        client = _client([HealthCheck("db", _fail_check)])
        resp = client.get("/health/live")
        assert resp.status_code == 200
        assert resp.json() == {"status": "alive"}
