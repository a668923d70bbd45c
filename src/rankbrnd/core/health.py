"""Health checks and the ``/health`` router.

``create_health_router()`` gives the API three probe endpoints:
``/health``, ``/health/ready`` and ``/health/live``. Each dependency is
described by a :class:`HealthCheck`; a failing required check makes the
service ``unhealthy``, a failing optional one only ``degraded``.

Usage::

    router = create_health_router(
        "rankbrnd",
        version="0.1.0",
        checks=[HealthCheck("database", database_check(url))],
    )
    app.include_router(router)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rankbrnd.core.timestamps import to_iso8601, utc_now

_START_TIME = time.monotonic()

Status = Literal["healthy", "degraded", "unhealthy"]


class CheckResult(BaseModel):
    status: Status
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Body of ``GET /health`` and ``GET /health/ready``."""

    status: Status = "healthy"
    service: str = ""
    version: str = ""
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _START_TIME, 1))
    timestamp: str = Field(default_factory=lambda: to_iso8601(utc_now()))
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    status: str = "alive"


@dataclass
class HealthCheck:
    """A single dependency check.

    ``check_fn`` is an async callable that returns truthy or raises.
    """

    name: str
    check_fn: Callable[[], Awaitable[bool]]
    required: bool = True
    timeout_s: float = 5.0


def database_check(database_url: str, *, data_dir: str | None = None) -> Callable[[], Awaitable[bool]]:
    """Build a check that opens *database_url* and runs ``SELECT 1``."""

    def _probe() -> bool:
        from rankbrnd.core.connection import create_connection

        conn, _info = create_connection(database_url, data_dir=data_dir)
        try:
            conn.execute("SELECT 1")
            conn.fetchone()
            return True
        finally:
            if hasattr(conn, "close"):
                conn.close()

    async def _check() -> bool:
        return await asyncio.to_thread(_probe)

    return _check


async def _run_checks(checks: list[HealthCheck]) -> dict[str, CheckResult]:
    async def _one(hc: HealthCheck) -> tuple[str, CheckResult]:
        start = time.monotonic()
        try:
            await asyncio.wait_for(hc.check_fn(), timeout=hc.timeout_s)
            elapsed = (time.monotonic() - start) * 1000
            return hc.name, CheckResult(status="healthy", latency_ms=round(elapsed, 2))
        except TimeoutError:
            return hc.name, CheckResult(status="unhealthy", error="timeout")
        except Exception as exc:  # noqa: BLE001
            elapsed = (time.monotonic() - start) * 1000
            return hc.name, CheckResult(status="unhealthy", latency_ms=round(elapsed, 2), error=str(exc)[:200])

    pairs = await asyncio.gather(*[_one(hc) for hc in checks])
    return dict(pairs)


def _compute_status(results: dict[str, CheckResult], checks: list[HealthCheck]) -> Status:
    required = {hc.name for hc in checks if hc.required}
    down = {name for name, result in results.items() if result.status != "healthy"}
    if down & required:
        return "unhealthy"
    if down:
        return "degraded"
    return "healthy"


def create_health_router(
    service_name: str,
    version: str,
    checks: list[HealthCheck] | None = None,
    prefix: str = "/health",
) -> APIRouter:
    """Router with ``{prefix}``, ``{prefix}/ready`` and ``{prefix}/live``.

    ``/health`` answers 503 only when a required check fails; ``/ready``
    answers 503 for any failing check; ``/live`` always answers 200.
    """
    router = APIRouter(tags=["health"])
    _checks: list[HealthCheck] = checks or []

    def _body(status: Status, results: dict[str, CheckResult]) -> dict[str, Any]:
        return HealthResponse(
            status=status,
            service=service_name,
            version=version,
            checks=results,
        ).model_dump()

    @router.get(prefix, response_model=HealthResponse)
    async def health() -> JSONResponse:
        results = await _run_checks(_checks)
        status = _compute_status(results, _checks)
        return JSONResponse(content=_body(status, results), status_code=503 if status == "unhealthy" else 200)

    @router.get(f"{prefix}/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        results = await _run_checks(_checks)
        status = _compute_status(results, _checks)
        return JSONResponse(content=_body(status, results), status_code=503 if status != "healthy" else 200)

    @router.get(f"{prefix}/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse()

    return router
