"""
Prometheus metrics endpoint.

Example:
    GET /metrics

    Response:
        # HELP hotel_bookings_total Booking creation attempts by outcome
        # TYPE hotel_bookings_total counter
        hotel_bookings_total{outcome="created"} 42.0
        hotel_bookings_total{outcome="room_unavailable"} 3.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Expose all registered metrics in the Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
