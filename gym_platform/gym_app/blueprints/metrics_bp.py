"""Prometheus scrape endpoint (request and lifecycle transition counters)."""

from __future__ import annotations

from flask import Blueprint, Response

from ..extensions import limiter
from ..metrics import latest_metrics

metrics_bp = Blueprint("metrics_bp", __name__)


@metrics_bp.get("/metrics")
@limiter.exempt
def metrics():
    payload, content_type = latest_metrics()
    return Response(payload, mimetype=content_type)
