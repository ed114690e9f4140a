from __future__ import annotations

import hashlib
import json
import os
import time
import uuid
from datetime import datetime, timezone

import sentry_sdk
from flask import g, has_request_context, request
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.utils import BadDsn

_REDACTED_HEADERS = frozenset(("authorization", "cookie", "set-cookie"))


def get_request_id() -> str:
    if not has_request_context():
        return ""
    return getattr(g, "request_id", "")


def _sample_rate(name: str) -> float:
    try:
        rate = float((os.getenv(name) or "0").strip())
    except ValueError:
        return 0.0
    return max(0.0, min(rate, 1.0))


def init_sentry(app) -> None:
    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn:
        app.logger.info("sentry_disabled_no_dsn")
        return
    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=os.getenv("SENTRY_ENVIRONMENT") or os.getenv("LISTIT_ENV") or "dev",
            release=os.getenv("GIT_SHA") or "unknown",
            integrations=[FlaskIntegration()],
            send_default_pii=False,
            traces_sample_rate=_sample_rate("SENTRY_TRACES_SAMPLE_RATE"),
            before_send=_before_send_scrub,
        )
    except BadDsn as e:
        app.logger.warning("sentry_init_failed err=%s", e)
        return
    app.logger.info("sentry_enabled")


def tag_request_user(user_id: int) -> None:
    # No-op until init_sentry has configured a client.
    sentry_sdk.set_user({"id": str(user_id)})


def _before_send_scrub(event, hint):
    req = event.setdefault("request", {})
    headers = req.get("headers") or {}
    req["headers"] = {
        key: ("[REDACTED]" if key.lower() in _REDACTED_HEADERS else value)
        for key, value in headers.items()
    }
    # Listing and message payloads carry base64 images.
    if "data" in req:
        req["data"] = "[OMITTED]"
    return event


def init_otel(app, *, enabled: bool) -> None:
    """Export traces over OTLP/HTTP when the ``otel`` extra is installed."""
    if not enabled:
        return
    endpoint = (os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip()
    if not endpoint:
        app.logger.info("otel_disabled_no_endpoint")
        return
    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.flask import FlaskInstrumentor
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        app.logger.warning("otel_unavailable err=%s", e)
        return

    from listit.extensions import db

    provider = TracerProvider(resource=Resource.create({"service.name": "listit-backend"}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    FlaskInstrumentor().instrument_app(app)
    SQLAlchemyInstrumentor().instrument(engine=db.engine)
    app.logger.info("otel_enabled endpoint=%s", endpoint)


def _client_fingerprint(salt: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    return hashlib.sha256(f"{salt}:{ip}".encode("utf-8")).hexdigest()[:16]


def _with_trace_id(app, response, rid: str) -> None:
    """Stamp ``trace_id`` on JSON API error bodies that do not carry one yet."""
    if response.status_code < 400 or not response.is_json or not request.path.startswith("/api/"):
        return
    body = response.get_json(silent=True)
    if isinstance(body, dict) and "trace_id" not in body:
        body["trace_id"] = rid
        response.set_data(app.json.dumps(body))


def install_request_observers(app) -> None:
    @app.before_request
    def _request_observer_begin():
        g.request_id = (request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
        g.request_started_at = time.perf_counter()

    @app.after_request
    def _request_observer_end(response):
        rid = getattr(g, "request_id", "") or uuid.uuid4().hex
        response.headers["X-Request-Id"] = rid
        _with_trace_id(app, response, rid)

        started = getattr(g, "request_started_at", None)
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "request_id": rid,
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "latency_ms": None if started is None else round((time.perf_counter() - started) * 1000.0, 2),
            "user_id": getattr(g, "auth_user_id", None),
            "ip_hash": _client_fingerprint(app.config.get("SECRET_KEY", "listit")),
            "user_agent": (request.user_agent.string or "")[:180],
        }
        app.logger.info(json.dumps(record))
        return response
