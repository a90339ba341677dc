"""
Request id and duration for every response.

``g.request_id`` comes from the caller's X-Request-ID or is generated; both
X-Request-ID and X-Request-Duration-Ms are echoed back.  Slow requests are
logged at WARNING, server errors at ERROR, domain rejections (409/422) at
INFO, everything else at DEBUG.  Health probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000
_QUIET_PREFIX = "/api/v1/health"


def _level_for(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    if status in (409, 422):
        return logging.INFO
    return logging.DEBUG


def init_request_timing(app: Flask):
    @app.before_request
    def _begin():
        g.started_at = time.perf_counter()
        g.request_id = (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish(response):
        started = g.get("started_at")
        if started is None:
            return response
        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"

        if request.path.startswith(_QUIET_PREFIX):
            return response
        logger.log(
            _level_for(response.status_code, elapsed),
            "%s %s -> %d in %.0fms", request.method, request.path, response.status_code, elapsed,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round(elapsed, 1),
                "event_type": "request",
            },
        )
        return response
